"""Pipeline module - orchestrates end-to-end document comparison."""
from pipeline.compare_documents import (
    compare_documents,
    compare_text,
    render_annotated,
    ComparisonPipeline,
    PipelineConfig,
    PipelineMetrics,
)

__all__ = [
    "compare_documents",
    "compare_text",
    "render_annotated",
    "ComparisonPipeline",
    "PipelineConfig",
    "PipelineMetrics",
]
