"""Splice diff annotations back into unit markup."""
from __future__ import annotations

import html
from typing import Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, NavigableString

from comparison.models import (
    DiffKind,
    DiffResult,
    DiffScope,
    DiffSpan,
    Side,
    SpanKind,
    StructuralUnit,
    UnitKind,
)
from comparison.reconciler import has_changes
from config.settings import settings
from utils import html_tree
from utils.logging import logger
from utils.text_normalization import normalize_with_offsets

UNIT_LABELS: Dict[UnitKind, str] = {
    UnitKind.IMAGE: "Image",
    UnitKind.TABLE: "Table",
    UnitKind.HEADER: "Header",
    UnitKind.LIST: "List",
    UnitKind.LINK: "Link",
    UnitKind.BLOCKQUOTE: "Quote",
    UnitKind.CODE: "Code",
    UnitKind.FORMATTED: "Formatting",
    UnitKind.STYLED: "Style",
    UnitKind.PLAIN_BLOCK: "Text",
}

UNIT_ICONS: Dict[UnitKind, str] = {
    UnitKind.IMAGE: "\U0001F5BC\ufe0f",
    UnitKind.TABLE: "\U0001F4CA",
    UnitKind.HEADER: "\U0001F4DD",
    UnitKind.LIST: "\U0001F4CB",
    UnitKind.LINK: "\U0001F517",
    UnitKind.BLOCKQUOTE: "\U0001F4AC",
    UnitKind.CODE: "\U0001F4BB",
    UnitKind.FORMATTED: "✨",
    UnitKind.STYLED: "\U0001F3A8",
    UnitKind.PLAIN_BLOCK: "\U0001F4C4",
}


class SpliceError(ValueError):
    """Unit markup does not line up with the spans computed for its text."""


# =============================================================================
# Markers
# =============================================================================

def _marker_class(kind: DiffKind | SpanKind) -> Optional[str]:
    if kind in (DiffKind.INSERT, SpanKind.INSERTED):
        return settings.insert_class
    if kind in (DiffKind.DELETE, SpanKind.REMOVED):
        return settings.delete_class
    return None


def inline_marker(kind: DiffKind | SpanKind, text: str) -> str:
    """Escape ``text`` and wrap it in the inline marker for ``kind`` (if any)."""
    escaped = html.escape(text, quote=False)
    css_class = _marker_class(kind)
    if css_class is None:
        return escaped
    return f'<span class="{css_class}">{escaped}</span>'


def block_marker(kind: DiffKind, content: str) -> str:
    """Wrap whole-unit content in the block marker for an insert or delete."""
    css_class = settings.insert_block_class if kind is DiffKind.INSERT else settings.delete_block_class
    return f'<div class="{css_class}">{content}</div>'


def unit_label(kind: UnitKind, side: Side) -> str:
    """Human-readable label for a wholly added/removed unit, e.g. 'Image Removed'."""
    label = f"{UNIT_LABELS[kind]} {'Removed' if side == 'left' else 'Added'}"
    if settings.show_label_icons:
        label = f"{UNIT_ICONS[kind]} {label}"
    return label


def _change_kind(side: Side) -> DiffKind:
    return DiffKind.DELETE if side == "left" else DiffKind.INSERT


# =============================================================================
# Splicing
# =============================================================================

def _char_kinds(spans: Sequence[DiffSpan]) -> List[SpanKind]:
    kinds: List[SpanKind] = []
    for span in spans:
        kinds.extend([span.kind] * len(span.text))
    return kinds


def _segments(raw: str, offsets: Sequence[Optional[int]], kinds: Sequence[SpanKind]) -> List[Tuple[SpanKind, str]]:
    """Group the characters of one text leaf into (kind, text) runs."""
    segments: List[Tuple[SpanKind, str]] = []
    for char, offset in zip(raw, offsets):
        kind = kinds[offset] if offset is not None else SpanKind.KEPT
        if segments and segments[-1][0] is kind:
            segments[-1] = (kind, segments[-1][1] + char)
        else:
            segments.append((kind, char))
    return segments


def plan_splice(
    leaf_texts: Sequence[str],
    plain_text: str,
    spans: Sequence[DiffSpan],
) -> Dict[int, List[Tuple[SpanKind, str]]]:
    """
    Compute the replacement segments for every text leaf touched by a change.

    Pure function of the leaf snapshot and the spans: nothing is mutated.

    Args:
        leaf_texts: Raw text of each text leaf, in document order
        plain_text: The unit's normalized text the spans were computed over
        spans: Spans for this side (kept plus removed, or kept plus inserted)

    Returns:
        Mapping from leaf index to its (kind, text) segments; leaves without
        changes are absent.

    Raises:
        SpliceError: if the leaves or spans do not reproduce ``plain_text``
    """
    normalized, offsets = normalize_with_offsets(list(leaf_texts))
    if normalized != plain_text:
        raise SpliceError("text leaves do not reproduce the unit text")
    kinds = _char_kinds(spans)
    if len(kinds) != len(normalized):
        raise SpliceError(f"spans cover {len(kinds)} characters, unit text has {len(normalized)}")

    plan: Dict[int, List[Tuple[SpanKind, str]]] = {}
    for index, raw in enumerate(leaf_texts):
        if raw.isspace():
            continue
        segments = _segments(raw, offsets[index], kinds)
        if any(kind is not SpanKind.KEPT for kind, _ in segments):
            plan[index] = segments
    return plan


def _marker_nodes(soup: BeautifulSoup, kind: SpanKind, text: str) -> list:
    """Nodes for one segment; whitespace at its edges stays outside the marker."""
    css_class = _marker_class(kind)
    core = text.strip()
    if css_class is None or not core:
        return [NavigableString(text)]

    start = text.index(core)
    lead, trail = text[:start], text[start + len(core):]
    marker = soup.new_tag("span", attrs={"class": css_class})
    marker.string = core
    nodes = [marker]
    if lead:
        nodes.insert(0, NavigableString(lead))
    if trail:
        nodes.append(NavigableString(trail))
    return nodes


def splice_markup(markup: str, plain_text: str, spans: Sequence[DiffSpan]) -> str:
    """
    Insert inline markers around changed words while keeping every tag and attribute.
    """
    soup = html_tree.parse(markup)
    leaves = html_tree.text_leaves(soup)
    plan = plan_splice([str(leaf) for leaf in leaves], plain_text, spans)

    for index, segments in plan.items():
        nodes = []
        for kind, text in segments:
            nodes.extend(_marker_nodes(soup, kind, text))
        leaves[index].replace_with(*nodes)
    return html_tree.serialize(soup)


def render_plain(spans: Sequence[DiffSpan], text: str = "") -> str:
    """Reconciled text with inline markers and no structural markup (degraded output)."""
    if not spans:
        return inline_marker(SpanKind.KEPT, text)
    return "".join(inline_marker(span.kind, span.text) for span in spans)


# =============================================================================
# Annotation entry points
# =============================================================================

def annotate_unmatched(unit: StructuralUnit, side: Side) -> DiffResult:
    """Whole-unit removal (left) or addition (right), labelled with the unit kind."""
    label = unit_label(unit.kind, side)
    label_class = settings.removed_label_class if side == "left" else settings.added_label_class
    content = f'<div class="{label_class}">{html.escape(label)}</div>{unit.markup}'
    return DiffResult(_change_kind(side), content, DiffScope.UNIT, label=label)


def annotate(unit: StructuralUnit, spans: Sequence[DiffSpan], side: Side) -> DiffResult:
    """
    Annotate a unit that has a counterpart (or a plain block) with its word diff.

    Units without changed spans pass through verbatim. Otherwise changed words
    are wrapped in inline markers inside the original markup; if the markup
    cannot be spliced the unit degrades to its reconciled plain text.
    """
    if not has_changes(spans):
        return DiffResult(DiffKind.EQUAL, unit.markup, DiffScope.MARKUP)

    try:
        content = splice_markup(unit.markup, unit.plain_text, spans)
    except SpliceError as exc:
        logger.warning("Cannot splice unit %s (%s); using plain text", unit.identity_key, exc)
        content = render_plain(spans, unit.plain_text)
    return DiffResult(_change_kind(side), content, DiffScope.MARKUP)
