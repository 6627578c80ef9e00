"""Unit tests for pipeline/compare_documents.py.

Tests cover:
- compare_text on plain text
- compare_documents end to end (structural and word-level changes)
- render_annotated
- Degraded units and strict mode
"""
from __future__ import annotations

import importlib

import pytest

from comparison.models import DiffKind, DiffResult, DiffScope
from pipeline import (
    ComparisonPipeline,
    PipelineConfig,
    compare_documents,
    compare_text,
    render_annotated,
)


def _pairs(diffs):
    return [(diff.kind, diff.content) for diff in diffs]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def old_report() -> str:
    return (
        "<div>"
        "<h1>Quarterly report</h1>"
        "<p>Revenue grew by ten percent this quarter.</p>"
        '<img src="chart.png" alt="Revenue chart"/>'
        "<ul><li>North</li><li>South</li></ul>"
        "</div>"
    )


@pytest.fixture
def new_report() -> str:
    return (
        "<div>"
        "<h2>Quarterly report</h2>"
        "<p>Revenue grew by twelve percent this quarter.</p>"
        '<img src="chart.png" alt="Revenue chart, updated"/>'
        "<ul><li>North</li><li>South</li></ul>"
        "<blockquote>Great work, team.</blockquote>"
        "</div>"
    )


# =============================================================================
# compare_text
# =============================================================================

class TestCompareText:
    """Plain-text comparison."""

    def test_single_word_change(self):
        result = compare_text("the cat sat", "the dog sat")
        assert _pairs(result.left_diffs) == [
            (DiffKind.EQUAL, "the "),
            (DiffKind.DELETE, "cat"),
            (DiffKind.EQUAL, " sat"),
        ]
        assert _pairs(result.right_diffs) == [
            (DiffKind.EQUAL, "the "),
            (DiffKind.INSERT, "dog"),
            (DiffKind.EQUAL, " sat"),
        ]
        assert result.summary.to_dict() == {"additions": 1, "deletions": 1, "changes": 2}

    def test_identical_text(self):
        result = compare_text("same words", "same words")
        assert _pairs(result.left_diffs) == [(DiffKind.EQUAL, "same words")]
        assert _pairs(result.right_diffs) == [(DiffKind.EQUAL, "same words")]
        assert result.summary.changes == 0

    def test_text_diffs_are_text_scoped(self):
        result = compare_text("a", "b")
        assert all(diff.scope is DiffScope.TEXT for diff in result.left_diffs + result.right_diffs)

    def test_none_is_empty(self):
        result = compare_text(None, "added")
        assert result.left_diffs == []
        assert _pairs(result.right_diffs) == [(DiffKind.INSERT, "added")]

    def test_bytes_are_decoded(self):
        result = compare_text("café".encode("utf-8"), "café")
        assert result.summary.changes == 0

    def test_non_text_input_rejected(self):
        with pytest.raises(TypeError):
            compare_text(42, "x")


# =============================================================================
# compare_documents
# =============================================================================

class TestCompareDocuments:
    """End-to-end markup comparison."""

    def test_both_empty(self):
        result = compare_documents("", "")
        assert result.to_dict() == {
            "leftDiffs": [],
            "rightDiffs": [],
            "summary": {"additions": 0, "deletions": 0, "changes": 0},
        }

    def test_added_image(self):
        result = compare_documents("<p>Hello world</p>", "<p>Hello world</p><img src='a.png'>")
        assert result.summary.to_dict() == {"additions": 1, "deletions": 0, "changes": 1}
        assert render_annotated(result.left_diffs) == "<p>Hello world</p>"
        assert render_annotated(result.right_diffs) == (
            "<p>Hello world</p>"
            '<div class="diff-insert-block">'
            '<div class="added-element-label">Image Added</div><img src="a.png"/>'
            "</div>"
        )

    def test_header_level_change(self):
        result = compare_documents("<h1>Title</h1>", "<h2>Title</h2>")
        assert result.summary.to_dict() == {"additions": 1, "deletions": 1, "changes": 2}
        assert [diff.label for diff in result.left_diffs] == ["Header Removed"]
        assert [diff.label for diff in result.right_diffs] == ["Header Added"]

    def test_identical_table(self):
        table = "<table><tr><td>a</td><td>b</td></tr><tr><td>c</td><td>d</td></tr></table>"
        result = compare_documents(table, table)
        assert result.summary.changes == 0
        assert _pairs(result.left_diffs) == [(DiffKind.EQUAL, table)]
        assert _pairs(result.right_diffs) == [(DiffKind.EQUAL, table)]

    def test_word_change_inside_paragraph(self):
        result = compare_documents("<p>Hello world</p>", "<p>Hello there</p>")
        assert render_annotated(result.left_diffs) == '<p>Hello <span class="diff-delete">world</span></p>'
        assert render_annotated(result.right_diffs) == '<p>Hello <span class="diff-insert">there</span></p>'
        assert result.summary.to_dict() == {"additions": 1, "deletions": 1, "changes": 2}

    def test_matched_unit_with_changed_text_is_annotated_in_place(self):
        result = compare_documents(
            "<table><tr><td>old value</td></tr></table>",
            "<table><tr><td>new value</td></tr></table>",
        )
        assert render_annotated(result.left_diffs) == (
            '<table><tr><td><span class="diff-delete">old</span> value</td></tr></table>'
        )
        assert render_annotated(result.right_diffs) == (
            '<table><tr><td><span class="diff-insert">new</span> value</td></tr></table>'
        )
        assert result.summary.changes == 2

    def test_paragraph_split_is_a_word_level_change(self):
        result = compare_documents(
            "<p>First sentence. Second sentence.</p>",
            "<p>First sentence.</p><p>Second sentence.</p>",
        )
        assert result.summary.changes == 0
        assert all(diff.kind is DiffKind.EQUAL for diff in result.right_diffs)

    def test_mixed_document(self, old_report, new_report):
        result = compare_documents(old_report, new_report)
        left = render_annotated(result.left_diffs)
        right = render_annotated(result.right_diffs)

        assert '<div class="removed-element-label">Header Removed</div>' in left
        assert '<div class="added-element-label">Header Added</div>' in right
        assert '<span class="diff-delete">ten</span>' in left
        assert '<span class="diff-insert">twelve</span>' in right
        assert '<div class="added-element-label">Quote Added</div>' in right
        # image matched on src, list byte-identical
        assert "Image" not in left + right
        assert "<ul><li>North</li><li>South</li></ul>" in left
        # header, word and quote on the right; header and word on the left
        assert result.summary.to_dict() == {"additions": 3, "deletions": 2, "changes": 5}

    def test_unmatched_unit_is_not_counted_again_as_text(self):
        result = compare_documents("", "<blockquote>one two three</blockquote>")
        assert result.summary.to_dict() == {"additions": 1, "deletions": 0, "changes": 1}

    def test_comparing_a_document_with_itself(self, old_report):
        result = compare_documents(old_report, old_report)
        assert result.summary.changes == 0
        assert all(diff.kind is DiffKind.EQUAL for diff in result.left_diffs + result.right_diffs)
        assert render_annotated(result.left_diffs) == old_report
        assert render_annotated(result.right_diffs) == old_report

    def test_unchanged_markup_keeps_attribute_order(self):
        document = '<p id="intro" class="lead">Hi</p><img src="a.png" alt="A" width="10"/>'
        result = compare_documents(document, document)
        assert render_annotated(result.left_diffs) == document
        assert render_annotated(result.right_diffs) == document

    def test_document_without_units_keeps_its_markup(self):
        result = compare_documents("<hr>", "<hr>")
        assert _pairs(result.left_diffs) == [(DiffKind.EQUAL, "<hr/>")]
        assert render_annotated(result.right_diffs) == "<hr/>"
        assert result.summary.changes == 0

    def test_empty_block_against_text(self):
        result = compare_documents("<p></p>", "<p>x</p>")
        assert render_annotated(result.left_diffs) == "<p></p>"
        assert render_annotated(result.right_diffs) == '<p><span class="diff-insert">x</span></p>'
        assert result.summary.to_dict() == {"additions": 1, "deletions": 0, "changes": 1}

    def test_changes_is_additions_plus_deletions(self, old_report, new_report):
        summary = compare_documents(old_report, new_report).summary
        assert summary.changes == summary.additions + summary.deletions

    def test_result_serializes(self):
        payload = compare_documents("<h1>x</h1>", "").to_dict()
        assert payload["leftDiffs"][0]["type"] == "delete"
        assert payload["leftDiffs"][0]["scope"] == "unit"
        assert payload["leftDiffs"][0]["label"] == "Header Removed"
        assert payload["rightDiffs"] == []


# =============================================================================
# render_annotated
# =============================================================================

class TestRenderAnnotated:
    """Tests for render_annotated."""

    def test_text_results_get_inline_markers(self):
        diffs = [
            DiffResult(DiffKind.EQUAL, "a < b "),
            DiffResult(DiffKind.INSERT, "c"),
            DiffResult(DiffKind.DELETE, "d"),
        ]
        assert render_annotated(diffs) == (
            'a &lt; b <span class="diff-insert">c</span><span class="diff-delete">d</span>'
        )

    def test_unit_results_get_block_markers(self):
        diffs = [DiffResult(DiffKind.DELETE, "<hr/>", DiffScope.UNIT, label="Text Removed")]
        assert render_annotated(diffs) == '<div class="diff-delete-block"><hr/></div>'

    def test_markup_results_pass_through(self):
        diffs = [DiffResult(DiffKind.INSERT, '<p><span class="diff-insert">x</span></p>', DiffScope.MARKUP)]
        assert render_annotated(diffs) == '<p><span class="diff-insert">x</span></p>'

    def test_empty(self):
        assert render_annotated([]) == ""


# =============================================================================
# ComparisonPipeline
# =============================================================================

class TestComparisonPipeline:
    """Metrics, degraded units and strict mode."""

    def test_metrics(self, old_report, new_report):
        pipeline = ComparisonPipeline(PipelineConfig(profile=True))
        pipeline.compare_documents(old_report, new_report)
        metrics = pipeline.metrics
        assert metrics.left_units == 4
        assert metrics.right_units == 5
        assert metrics.unmatched_left == 1
        assert metrics.unmatched_right == 2
        assert metrics.plain_blocks_left == 1
        assert metrics.degraded_units == 0
        assert set(metrics.timing_breakdown) == {"extraction", "matching", "reconciliation", "annotation"}
        assert metrics.to_dict()["left_units"] == 4

    def test_failing_unit_degrades_to_plain_text(self, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(importlib.import_module("pipeline.compare_documents"), "annotate", boom)
        pipeline = ComparisonPipeline()
        result = pipeline.compare_documents("<p>Hello world</p>", "<p>Hello there</p>")
        assert pipeline.metrics.degraded_units == 2
        assert _pairs(result.left_diffs) == [(DiffKind.DELETE, 'Hello <span class="diff-delete">world</span>')]
        assert result.summary.changes == 2

    def test_strict_mode_reraises(self, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(importlib.import_module("pipeline.compare_documents"), "annotate", boom)
        pipeline = ComparisonPipeline(PipelineConfig(strict=True))
        with pytest.raises(RuntimeError):
            pipeline.compare_documents("<p>a</p>", "<p>b</p>")
