"""
Main orchestrator: end-to-end document comparison.

Provides the entrypoints that:
1. Extract structural units from both documents
2. Match units across sides per kind
3. Reconcile the remaining text word by word
4. Splice annotations back into each side's markup
5. Return annotated left/right fragments with a combined summary
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from comparison.annotator import annotate, annotate_unmatched, block_marker, inline_marker, render_plain
from comparison.extractor import extract_document
from comparison.matcher import match_units
from comparison.models import (
    ComparisonResult,
    DiffKind,
    DiffResult,
    DiffScope,
    DiffSpan,
    MatchStatus,
    Side,
    SpanKind,
    StructuralUnit,
    UnitMatch,
)
from comparison.reconciler import distribute_spans, has_changes, reconcile
from comparison.summary import aggregate
from utils.logging import logger
from utils.performance import Timing, log_performance_summary, track_time
from utils.validation import DocumentInput, validate_document

# Joins plain-block texts for the global text pass
_BLOCK_SEPARATOR = " "


@dataclass
class PipelineConfig:
    """Configuration for the comparison pipeline."""

    # Re-raise unexpected per-unit failures instead of degrading the unit
    strict: bool = False

    # Log a timing breakdown after each comparison
    profile: bool = False


@dataclass
class PipelineMetrics:
    """Metrics from the last pipeline execution."""
    total_time: float = 0.0
    timing_breakdown: Dict[str, float] = field(default_factory=dict)

    left_units: int = 0
    right_units: int = 0
    unmatched_left: int = 0
    unmatched_right: int = 0
    plain_blocks_left: int = 0
    plain_blocks_right: int = 0
    degraded_units: int = 0

    def to_dict(self) -> dict:
        """Export to JSON-serializable dict."""
        return {
            "total_time": self.total_time,
            "timing_breakdown": self.timing_breakdown,
            "left_units": self.left_units,
            "right_units": self.right_units,
            "unmatched_left": self.unmatched_left,
            "unmatched_right": self.unmatched_right,
            "plain_blocks_left": self.plain_blocks_left,
            "plain_blocks_right": self.plain_blocks_right,
            "degraded_units": self.degraded_units,
        }


def _deferred(matches: Mapping[int, UnitMatch]) -> List[int]:
    return [position for position, match in sorted(matches.items()) if match.status is MatchStatus.DEFERRED]


def _unmatched_count(matches: Mapping[int, UnitMatch]) -> int:
    return sum(1 for match in matches.values() if match.status is MatchStatus.UNMATCHED)


class ComparisonPipeline:
    """
    Document comparison pipeline.

    Usage:
        pipeline = ComparisonPipeline()
        result = pipeline.compare_documents(old_html, new_html)
        print(result.summary.to_dict())
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()
        self.metrics = PipelineMetrics()

    # -------------------------------------------------------------------------
    # Plain text
    # -------------------------------------------------------------------------

    def compare_text(self, left_text: DocumentInput, right_text: DocumentInput) -> ComparisonResult:
        """Word-level comparison of two plain texts."""
        left_text = validate_document(left_text, "left_text")
        right_text = validate_document(right_text, "right_text")

        left_spans, right_spans = reconcile(left_text, right_text)
        result = ComparisonResult(
            left_diffs=[
                DiffResult(DiffKind.EQUAL if span.kind is SpanKind.KEPT else DiffKind.DELETE, span.text)
                for span in left_spans
            ],
            right_diffs=[
                DiffResult(DiffKind.EQUAL if span.kind is SpanKind.KEPT else DiffKind.INSERT, span.text)
                for span in right_spans
            ],
            summary=aggregate({}, {}, left_spans, right_spans),
        )
        logger.info("Text comparison: %s", result.summary.to_dict())
        return result

    # -------------------------------------------------------------------------
    # Markup
    # -------------------------------------------------------------------------

    def compare_documents(self, left_markup: DocumentInput, right_markup: DocumentInput) -> ComparisonResult:
        """Structural plus word-level comparison of two HTML documents."""
        left_markup = validate_document(left_markup, "left_markup")
        right_markup = validate_document(right_markup, "right_markup")

        self.metrics = PipelineMetrics()
        timings: List[Timing] = []
        start = time.perf_counter()

        with track_time("extraction", timings):
            left_document = extract_document(left_markup)
            right_document = extract_document(right_markup)
        left_units = left_document.units
        right_units = right_document.units
        logger.info("Comparing documents: %d units vs %d units", len(left_units), len(right_units))

        with track_time("matching", timings):
            left_matches = match_units(left_units, right_units)
            right_matches = match_units(right_units, left_units)

        with track_time("reconciliation", timings):
            left_unit_spans, right_unit_spans, left_spans, right_spans = self._reconcile(
                left_units, right_units, left_matches, right_matches
            )

        with track_time("annotation", timings):
            left_diffs = self._annotate_side(left_units, left_matches, left_unit_spans, "left")
            right_diffs = self._annotate_side(right_units, right_matches, right_unit_spans, "right")
        if left_document.residual_markup:
            left_diffs.append(DiffResult(DiffKind.EQUAL, left_document.residual_markup, DiffScope.MARKUP))
        if right_document.residual_markup:
            right_diffs.append(DiffResult(DiffKind.EQUAL, right_document.residual_markup, DiffScope.MARKUP))

        summary = aggregate(left_matches, right_matches, left_spans, right_spans)

        self.metrics.total_time = time.perf_counter() - start
        self.metrics.timing_breakdown = {timing.name: timing.duration for timing in timings}
        self.metrics.left_units = len(left_units)
        self.metrics.right_units = len(right_units)
        self.metrics.unmatched_left = _unmatched_count(left_matches)
        self.metrics.unmatched_right = _unmatched_count(right_matches)
        self.metrics.plain_blocks_left = len(_deferred(left_matches))
        self.metrics.plain_blocks_right = len(_deferred(right_matches))

        if self.config.profile:
            log_performance_summary(timings)
        logger.info("Document comparison: %s", summary.to_dict())
        return ComparisonResult(left_diffs=left_diffs, right_diffs=right_diffs, summary=summary)

    def _reconcile(
        self,
        left_units: Sequence[StructuralUnit],
        right_units: Sequence[StructuralUnit],
        left_matches: Mapping[int, UnitMatch],
        right_matches: Mapping[int, UnitMatch],
    ) -> Tuple[Dict[int, List[DiffSpan]], Dict[int, List[DiffSpan]], List[DiffSpan], List[DiffSpan]]:
        """
        Compute word spans for every unit that takes part in the text pass.

        Plain blocks of each side are reconciled together as one text so that
        paragraphs can be split, merged or moved without whole-block noise.
        Matched structural units whose text differs from their counterpart are
        reconciled pair by pair. Unmatched units get no spans.

        Summary counts are per change run, not per block: a run that the
        global pass merges across a block boundary counts once even though
        it is split between two blocks when distributed.

        Returns:
            Tuple of (left spans per unit, right spans per unit, all left
            spans, all right spans); the last two feed the summary.
        """
        left_unit_spans: Dict[int, List[DiffSpan]] = {}
        right_unit_spans: Dict[int, List[DiffSpan]] = {}

        left_blocks = _deferred(left_matches)
        right_blocks = _deferred(right_matches)
        left_texts = [left_units[i].plain_text for i in left_blocks]
        right_texts = [right_units[i].plain_text for i in right_blocks]
        left_spans, right_spans = reconcile(
            _BLOCK_SEPARATOR.join(left_texts), _BLOCK_SEPARATOR.join(right_texts)
        )
        left_unit_spans.update(zip(left_blocks, distribute_spans(left_texts, left_spans, _BLOCK_SEPARATOR)))
        right_unit_spans.update(zip(right_blocks, distribute_spans(right_texts, right_spans, _BLOCK_SEPARATOR)))

        all_left = list(left_spans)
        all_right = list(right_spans)

        for position, match in left_matches.items():
            unit = left_units[position]
            if match.matched and unit.plain_text != right_units[match.counterpart].plain_text:
                spans, _ = reconcile(unit.plain_text, right_units[match.counterpart].plain_text)
                left_unit_spans[position] = spans
                all_left.extend(spans)

        for position, match in right_matches.items():
            unit = right_units[position]
            if match.matched and unit.plain_text != left_units[match.counterpart].plain_text:
                _, spans = reconcile(left_units[match.counterpart].plain_text, unit.plain_text)
                right_unit_spans[position] = spans
                all_right.extend(spans)

        return left_unit_spans, right_unit_spans, all_left, all_right

    def _annotate_side(
        self,
        units: Sequence[StructuralUnit],
        matches: Mapping[int, UnitMatch],
        unit_spans: Mapping[int, List[DiffSpan]],
        side: Side,
    ) -> List[DiffResult]:
        results: List[DiffResult] = []
        for position, unit in enumerate(units):
            if unit.leading:
                results.append(DiffResult(DiffKind.EQUAL, unit.leading, DiffScope.MARKUP))
            results.append(self._annotate_unit(unit, matches[position], unit_spans.get(position, []), side))
            if unit.trailing:
                results.append(DiffResult(DiffKind.EQUAL, unit.trailing, DiffScope.MARKUP))
        return results

    def _annotate_unit(
        self,
        unit: StructuralUnit,
        match: UnitMatch,
        spans: Sequence[DiffSpan],
        side: Side,
    ) -> DiffResult:
        if match.status is MatchStatus.UNMATCHED:
            logger.debug("%s unit %s has no counterpart", side, unit.identity_key)
            return annotate_unmatched(unit, side)
        try:
            return annotate(unit, spans, side)
        except Exception as exc:
            if self.config.strict:
                raise
            logger.warning("Annotation failed for unit %s, emitting plain text: %s", unit.identity_key, exc)
            self.metrics.degraded_units += 1
            kind = DiffKind.EQUAL
            if has_changes(spans):
                kind = DiffKind.DELETE if side == "left" else DiffKind.INSERT
            return DiffResult(kind, render_plain(spans, unit.plain_text), DiffScope.MARKUP)


def render_annotated(diffs: Sequence[DiffResult]) -> str:
    """
    Join one side's diff results into a single renderable markup string.

    Plain-text results are escaped, with inserted/removed text wrapped in
    inline markers; whole-unit results are wrapped in block markers; markup
    results are emitted as they are.
    """
    parts: List[str] = []
    for diff in diffs:
        if diff.scope is DiffScope.TEXT:
            parts.append(inline_marker(diff.kind, diff.content))
        elif diff.scope is DiffScope.UNIT and diff.kind is not DiffKind.EQUAL:
            parts.append(block_marker(diff.kind, diff.content))
        else:
            parts.append(diff.content)
    return "".join(parts)


def compare_text(left_text: DocumentInput, right_text: DocumentInput) -> ComparisonResult:
    """Word-level comparison of two plain texts."""
    return ComparisonPipeline().compare_text(left_text, right_text)


def compare_documents(left_markup: DocumentInput, right_markup: DocumentInput) -> ComparisonResult:
    """
    Compare two HTML documents.

    Args:
        left_markup: Original document markup
        right_markup: Revised document markup

    Returns:
        ComparisonResult with annotated left/right fragments and the summary
    """
    return ComparisonPipeline().compare_documents(left_markup, right_markup)
