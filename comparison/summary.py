"""Combine structural and word-level findings into one summary."""
from __future__ import annotations

from typing import Mapping, Sequence

from comparison.models import ComparisonSummary, DiffSpan, MatchStatus, SpanKind, UnitMatch
from comparison.reconciler import count_spans


def aggregate(
    left_matches: Mapping[int, UnitMatch],
    right_matches: Mapping[int, UnitMatch],
    left_spans: Sequence[DiffSpan],
    right_spans: Sequence[DiffSpan],
) -> ComparisonSummary:
    """
    Count additions and deletions across both passes.

    Unmatched left units are deletions and unmatched right units additions.
    Removed spans are counted from the left spans and inserted spans from the
    right spans. Callers pass only spans of units that took part in the text
    pass, so wholly added/removed units are never counted twice.
    """
    summary = ComparisonSummary()
    summary.record_deletions(sum(1 for m in left_matches.values() if m.status is MatchStatus.UNMATCHED))
    summary.record_additions(sum(1 for m in right_matches.values() if m.status is MatchStatus.UNMATCHED))
    summary.record_deletions(count_spans(left_spans, SpanKind.REMOVED))
    summary.record_additions(count_spans(right_spans, SpanKind.INSERTED))
    return summary
