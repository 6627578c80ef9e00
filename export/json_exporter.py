"""Export comparison results as JSON."""
from __future__ import annotations

import json
from pathlib import Path

from comparison.models import ComparisonResult
from config.settings import settings
from utils.logging import logger


def export_json(result: ComparisonResult, output_path: str | Path) -> Path:
    """
    Export a comparison result as JSON.

    The payload carries both diff sequences, the summary, and the marker
    classes the annotated content was rendered with, so a viewer can style
    the fragments without knowing the engine configuration.
    """
    output = Path(output_path)
    logger.info("Writing JSON diff to %s", output)

    payload = result.to_dict()
    payload["markers"] = {
        "insert": settings.insert_class,
        "delete": settings.delete_class,
        "insert_block": settings.insert_block_class,
        "delete_block": settings.delete_block_class,
        "added_label": settings.added_label_class,
        "removed_label": settings.removed_label_class,
    }
    output.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return output
