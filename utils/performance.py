"""Performance profiling utilities."""
from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Generator, List, Optional

from utils.logging import logger


@dataclass
class Timing:
    name: str
    duration: float
    metadata: dict = field(default_factory=dict)


@contextmanager
def track_time(name: str, timings: Optional[List[Timing]] = None, **metadata) -> Generator[Timing, None, None]:
    """Context manager to track execution time.

    The finished Timing is appended to ``timings`` when given, so each caller
    keeps its own record.
    """
    timing = Timing(name=name, duration=0, metadata=metadata)
    start = time.perf_counter()
    try:
        yield timing
    finally:
        timing.duration = time.perf_counter() - start
        if timings is not None:
            timings.append(timing)
        logger.debug("Timing: %s took %.3f seconds", name, timing.duration)


def log_performance_summary(timings: List[Timing]) -> None:
    """Log a summary of recorded timings."""
    if not timings:
        logger.info("No timings recorded")
        return

    logger.info("Performance Summary:")
    total = sum(t.duration for t in timings)
    for timing in timings:
        percentage = (timing.duration / total * 100) if total > 0 else 0
        logger.info(
            "  %s: %.3fs (%.1f%%)",
            timing.name,
            timing.duration,
            percentage,
        )
    logger.info("  Total: %.3fs", total)
