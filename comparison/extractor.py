"""Structural unit extraction from HTML documents.

The walk partitions the document into a flat, ordered list of units:

- Structural elements (images, tables, headers, ...) become one unit each;
  nothing below them is emitted again.
- Other elements that contain structural descendants are wrappers: their
  start/end tags become glue and their children are walked.
- Block elements without structural descendants become one plain block.
- Consecutive inline content (text, inline elements) is coalesced into a
  plain text run.

Markup that is not part of any unit (wrapper tags, whitespace, comments,
empty blocks) is carried on the neighbouring unit as ``leading``/``trailing``
glue, so the units together reproduce the whole document.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag
from bs4.element import PageElement

from comparison.models import FieldValue, StructuralUnit, UnitKind
from config.settings import settings
from utils import html_tree
from utils.logging import logger
from utils.text_normalization import normalize_whitespace

_HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
_LIST_TAGS = {"ul", "ol"}
_FORMAT_TAGS: Dict[str, str] = {
    "strong": "bold",
    "b": "bold",
    "em": "italic",
    "i": "italic",
    "u": "underline",
}
_STYLED_TAGS = {"div", "span", "p"}

# Elements that end an inline text run and stand as their own plain block
_BLOCK_TAGS = {
    "address", "article", "aside", "body", "caption", "center", "dd", "details",
    "dialog", "dir", "div", "dl", "dt", "fieldset", "figcaption", "figure",
    "footer", "form", "head", "header", "hgroup", "hr", "html", "li", "main",
    "menu", "nav", "noscript", "p", "section", "summary", "tbody", "td",
    "tfoot", "th", "thead", "title", "tr",
}


def classify(tag: Tag) -> Optional[UnitKind]:
    """Structural kind of an element, or None for non-structural elements."""
    name = tag.name
    if name == "img":
        return UnitKind.IMAGE
    if name == "table":
        return UnitKind.TABLE
    if name in _HEADING_TAGS:
        return UnitKind.HEADER
    if name in _LIST_TAGS:
        return UnitKind.LIST
    if name == "a":
        return UnitKind.LINK
    if name == "blockquote":
        return UnitKind.BLOCKQUOTE
    if name in ("pre", "code"):
        return UnitKind.CODE
    if name in _FORMAT_TAGS:
        return UnitKind.FORMATTED
    if name in _STYLED_TAGS and tag.has_attr("style"):
        return UnitKind.STYLED
    return None


def _is_structural(tag: Tag) -> bool:
    return classify(tag) is not None


def _table_shape(table: Tag) -> Dict[str, FieldValue]:
    rows = table.find_all("tr")
    first_row = rows[0] if rows else None
    cols = len(first_row.find_all(["td", "th"])) if first_row is not None else 0
    return {"rows": len(rows), "cols": cols}


def comparable_fields(kind: UnitKind, tag: Optional[Tag], text: str) -> Dict[str, FieldValue]:
    """Fields the matcher compares for a unit of ``kind``."""
    if kind is UnitKind.PLAIN_BLOCK:
        return {"tag": tag.name if tag is not None else "#text", "text": text}

    attrs = html_tree.attributes(tag)
    if kind is UnitKind.IMAGE:
        return {
            "src": attrs.get("src", ""),
            "alt": attrs.get("alt", ""),
            "width": attrs.get("width", ""),
            "height": attrs.get("height", ""),
        }
    if kind is UnitKind.TABLE:
        return _table_shape(tag)
    if kind is UnitKind.HEADER:
        return {"level": int(tag.name[1]), "text": text}
    if kind is UnitKind.LIST:
        return {"list_type": tag.name, "items": len(tag.find_all("li"))}
    if kind is UnitKind.LINK:
        return {"href": attrs.get("href", ""), "text": text}
    if kind is UnitKind.BLOCKQUOTE:
        return {"text": text}
    if kind is UnitKind.CODE:
        return {"text": text, "is_block": tag.name == "pre"}
    if kind is UnitKind.FORMATTED:
        return {"format": _FORMAT_TAGS[tag.name], "text": text}
    if kind is UnitKind.STYLED:
        return {"tag": tag.name, "style": attrs.get("style", ""), "text": text}
    raise ValueError(f"Unhandled unit kind: {kind}")


def _identity_key(kind: UnitKind, ordinal: int, fields: Dict[str, FieldValue], text: str) -> str:
    hint = text or str(fields.get("src") or fields.get("alt") or fields.get("href") or "")
    hint = re.sub(r"\s+", " ", hint)[: settings.identity_key_length]
    return f"{kind.value}-{ordinal}-{hint}"


@dataclass
class _Draft:
    kind: UnitKind
    tag: Optional[Tag]
    markup: str
    plain_text: str
    leading: str = ""
    trailing: List[str] = field(default_factory=list)


class StructuralExtractor:
    """Walks one parsed document and collects its structural units."""

    def __init__(self) -> None:
        self._drafts: List[_Draft] = []
        self._glue: List[str] = []
        self._run: List[PageElement] = []
        # Glue of a document without units (e.g. only <hr> or empty blocks)
        self.residual_markup = ""

    def extract(self, soup: BeautifulSoup) -> List[StructuralUnit]:
        self._drafts, self._glue, self._run = [], [], []
        self.residual_markup = ""
        self._walk_children(soup)
        self._flush_run()
        if self._drafts:
            self._drafts[-1].trailing.extend(self._glue)
        else:
            self.residual_markup = "".join(self._glue)
        self._glue = []
        return self._freeze()

    # -- walk ---------------------------------------------------------------

    def _walk_children(self, parent: Tag) -> None:
        for child in list(parent.children):
            self._visit(child)

    def _visit(self, node: PageElement) -> None:
        if not isinstance(node, Tag):
            if html_tree.is_text(node):
                self._run.append(node)
            elif self._run:
                # Comments inside a text run stay in place
                self._run.append(node)
            else:
                self._glue.append(html_tree.serialize(node))
            return

        kind = classify(node)
        if kind is not None:
            self._flush_run()
            self._emit(kind, node, html_tree.serialize(node), html_tree.plain_text(node))
            return

        if html_tree.has_descendant(node, _is_structural):
            self._flush_run()
            self._glue.append(html_tree.open_tag(node))
            self._walk_children(node)
            self._flush_run()
            self._glue.append(html_tree.close_tag(node))
            return

        if node.name in _BLOCK_TAGS:
            self._flush_run()
            self._emit(UnitKind.PLAIN_BLOCK, node, html_tree.serialize(node), html_tree.plain_text(node))
            return

        self._run.append(node)

    def _flush_run(self) -> None:
        if not self._run:
            return
        nodes, self._run = self._run, []
        markup = "".join(html_tree.serialize(node) for node in nodes)
        text = normalize_whitespace("".join(html_tree.text_content(node) for node in nodes))
        self._emit(UnitKind.PLAIN_BLOCK, None, markup, text)

    def _emit(self, kind: UnitKind, tag: Optional[Tag], markup: str, text: str) -> None:
        if kind is UnitKind.PLAIN_BLOCK and not text:
            # Nothing to compare: keep the markup as glue
            self._glue.append(markup)
            return
        self._drafts.append(_Draft(kind=kind, tag=tag, markup=markup, plain_text=text, leading="".join(self._glue)))
        self._glue = []

    # -- freeze -------------------------------------------------------------

    def _freeze(self) -> List[StructuralUnit]:
        units: List[StructuralUnit] = []
        ordinals: Dict[UnitKind, int] = {}
        for index, draft in enumerate(self._drafts):
            fields = comparable_fields(draft.kind, draft.tag, draft.plain_text)
            ordinal = ordinals.get(draft.kind, 0)
            ordinals[draft.kind] = ordinal + 1
            units.append(StructuralUnit(
                kind=draft.kind,
                sequence_index=index,
                identity_key=_identity_key(draft.kind, ordinal, fields, draft.plain_text),
                comparable_fields=MappingProxyType(fields),
                markup=draft.markup,
                plain_text=draft.plain_text,
                leading=draft.leading,
                trailing="".join(draft.trailing),
            ))
        return units


@dataclass(frozen=True)
class ExtractedDocument:
    """Units of one document plus any markup no unit could carry."""
    units: List[StructuralUnit]
    residual_markup: str = ""


def extract_document(document: str | BeautifulSoup) -> ExtractedDocument:
    """
    Extract the ordered structural units of a document.

    Args:
        document: Markup string or an already parsed tree

    Returns:
        ExtractedDocument whose units are in document order. When the
        document has no units, its markup (wrapper tags, comments, empty
        blocks, whitespace) is kept in ``residual_markup``.
    """
    soup = html_tree.parse(document) if isinstance(document, str) else document
    extractor = StructuralExtractor()
    units = extractor.extract(soup)
    logger.debug(
        "Extracted %d units (%s)",
        len(units),
        ", ".join(unit.identity_key for unit in units[:10]),
    )
    return ExtractedDocument(units=units, residual_markup=extractor.residual_markup)


def extract_units(document: str | BeautifulSoup) -> List[StructuralUnit]:
    """Units of a document in order; empty for a document without text or structure."""
    return extract_document(document).units
