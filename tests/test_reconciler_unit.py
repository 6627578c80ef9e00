"""Unit tests for comparison/reconciler.py.

Tests cover:
- diff_words / reconcile span semantics
- Whitespace-gap merging of change runs
- Sentence fallback above the token budget
- distribute_spans
"""
from __future__ import annotations

from typing import List

import pytest

from comparison.models import DiffSpan, SpanKind
from comparison.reconciler import count_spans, diff_words, distribute_spans, has_changes, reconcile
from config.settings import settings


def _text(spans: List[DiffSpan]) -> str:
    return "".join(span.text for span in spans)


# =============================================================================
# reconcile
# =============================================================================

class TestReconcile:
    """Tests for reconcile."""

    def test_single_word_replacement(self):
        left, right = reconcile("the cat sat", "the dog sat")
        assert left == [
            DiffSpan(SpanKind.KEPT, "the "),
            DiffSpan(SpanKind.REMOVED, "cat"),
            DiffSpan(SpanKind.KEPT, " sat"),
        ]
        assert right == [
            DiffSpan(SpanKind.KEPT, "the "),
            DiffSpan(SpanKind.INSERTED, "dog"),
            DiffSpan(SpanKind.KEPT, " sat"),
        ]

    def test_identical_texts_are_all_kept(self):
        left, right = reconcile("same text here", "same text here")
        assert left == [DiffSpan(SpanKind.KEPT, "same text here")]
        assert right == [DiffSpan(SpanKind.KEPT, "same text here")]

    def test_empty_texts(self):
        assert reconcile("", "") == ([], [])

    def test_everything_inserted(self):
        left, right = reconcile("", "new words")
        assert left == []
        assert right == [DiffSpan(SpanKind.INSERTED, "new words")]

    def test_everything_removed(self):
        left, right = reconcile("old words", "")
        assert left == [DiffSpan(SpanKind.REMOVED, "old words")]
        assert right == []

    def test_changed_letter_replaces_whole_word(self):
        left, right = reconcile("a reconciliation b", "a reconcilation b")
        assert DiffSpan(SpanKind.REMOVED, "reconciliation") in left
        assert DiffSpan(SpanKind.INSERTED, "reconcilation") in right

    @pytest.mark.parametrize(
        "left_text,right_text",
        [
            ("The quick brown fox", "The quick red fox jumps"),
            ("Hello, world!", "Goodbye, cruel world."),
            ("  spaced   out  ", "spaced out"),
            ("one two three four", "four three two one"),
        ],
    )
    def test_spans_reproduce_each_side(self, left_text, right_text):
        left, right = reconcile(left_text, right_text)
        assert _text(left) == left_text
        assert _text(right) == right_text
        assert all(span.kind is not SpanKind.INSERTED for span in left)
        assert all(span.kind is not SpanKind.REMOVED for span in right)

    def test_adjacent_spans_never_share_a_kind(self):
        left, right = reconcile("a b c d e", "a x y d z")
        for spans in (left, right):
            for before, after in zip(spans, spans[1:]):
                assert before.kind is not after.kind


class TestDiffWords:
    """Tests for the interleaved diff and whitespace-gap merging."""

    def test_removed_precedes_inserted(self):
        spans = diff_words("the cat sat", "the dog sat")
        assert [span.kind for span in spans] == [
            SpanKind.KEPT,
            SpanKind.REMOVED,
            SpanKind.INSERTED,
            SpanKind.KEPT,
        ]

    def test_changes_separated_by_spaces_merge(self):
        spans = diff_words("keep a b c keep", "keep x y z keep")
        assert spans == [
            DiffSpan(SpanKind.KEPT, "keep "),
            DiffSpan(SpanKind.REMOVED, "a b c"),
            DiffSpan(SpanKind.INSERTED, "x y z"),
            DiffSpan(SpanKind.KEPT, " keep"),
        ]


class TestTokenBudget:
    """Inputs above max_diff_tokens are diffed sentence by sentence."""

    def test_falls_back_to_sentences(self, monkeypatch):
        monkeypatch.setattr(settings, "max_diff_tokens", 3)
        left, right = reconcile("One fish. Two fish.", "One fish. Red fish.")
        assert left == [DiffSpan(SpanKind.KEPT, "One fish. "), DiffSpan(SpanKind.REMOVED, "Two fish.")]
        assert right == [DiffSpan(SpanKind.KEPT, "One fish. "), DiffSpan(SpanKind.INSERTED, "Red fish.")]

    def test_zero_disables_the_limit(self, monkeypatch):
        monkeypatch.setattr(settings, "max_diff_tokens", 0)
        left, _ = reconcile("One fish. Two fish.", "One fish. Red fish.")
        assert DiffSpan(SpanKind.REMOVED, "Two") in left


# =============================================================================
# Helpers
# =============================================================================

def test_has_changes_and_count_spans():
    spans = [
        DiffSpan(SpanKind.KEPT, "a "),
        DiffSpan(SpanKind.REMOVED, "b"),
        DiffSpan(SpanKind.KEPT, " c "),
        DiffSpan(SpanKind.REMOVED, "d"),
    ]
    assert has_changes(spans)
    assert not has_changes([DiffSpan(SpanKind.KEPT, "a")])
    assert not has_changes([])
    assert count_spans(spans, SpanKind.REMOVED) == 2
    assert count_spans(spans, SpanKind.INSERTED) == 0


class TestDistributeSpans:
    """Tests for distribute_spans."""

    def test_cuts_at_separators(self):
        spans = [DiffSpan(SpanKind.KEPT, "A "), DiffSpan(SpanKind.REMOVED, "B")]
        assert distribute_spans(["A", "B"], spans) == [
            [DiffSpan(SpanKind.KEPT, "A")],
            [DiffSpan(SpanKind.REMOVED, "B")],
        ]

    def test_span_crossing_boundary_is_split(self):
        spans = [DiffSpan(SpanKind.KEPT, "first"), DiffSpan(SpanKind.REMOVED, " second third")]
        assert distribute_spans(["first second", "third"], spans) == [
            [DiffSpan(SpanKind.KEPT, "first"), DiffSpan(SpanKind.REMOVED, " second")],
            [DiffSpan(SpanKind.REMOVED, "third")],
        ]

    def test_each_piece_reproduces_its_text(self):
        texts = ["Hello world", "second block", "the end"]
        left, _ = reconcile(" ".join(texts), "Hello there second block end")
        pieces = distribute_spans(texts, left)
        assert [_text(piece) for piece in pieces] == texts

    def test_no_texts(self):
        assert distribute_spans([], []) == []
