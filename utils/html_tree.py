"""Tree access over BeautifulSoup: parse, query, read and serialize markup nodes."""
from __future__ import annotations

from typing import Callable, Dict, List, Optional, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.dammit import EntitySubstitution
from bs4.element import PageElement, PreformattedString, Script, Stylesheet, TemplateString
from bs4.formatter import HTMLFormatter

from utils.text_normalization import normalize_whitespace

# Built-in parser: keeps fragments as-is (no implicit <html>/<body> wrapper),
# which the unit glue relies on to reproduce the input document.
PARSER = "html.parser"

# Strings that are not document text: comments, doctypes, CDATA, script/style bodies
_NON_TEXT_STRINGS = (PreformattedString, Script, Stylesheet, TemplateString)

Node = Union[Tag, NavigableString]


class SourceOrderFormatter(HTMLFormatter):
    """The "minimal" formatter, minus attribute sorting: attributes keep their source order."""

    def attributes(self, tag: Tag):
        if tag.attrs is None:
            return []
        return list(tag.attrs.items())


FORMATTER = SourceOrderFormatter(entity_substitution=EntitySubstitution.substitute_xml)


def parse(markup: str) -> BeautifulSoup:
    """Parse a markup string; malformed input is recovered by the parser."""
    return BeautifulSoup(markup or "", PARSER)


def query(root: Tag, predicate: Callable[[Tag], bool]) -> List[Tag]:
    """Return descendant elements of ``root`` satisfying ``predicate``, in document order."""
    return [el for el in root.find_all(True) if predicate(el)]


def is_element(node: PageElement) -> bool:
    return isinstance(node, Tag)


def is_text(node: PageElement) -> bool:
    """True for strings that contribute to an element's text content."""
    return isinstance(node, NavigableString) and not isinstance(node, _NON_TEXT_STRINGS)


def serialize(node: PageElement) -> str:
    """Serialized markup of a node (element, text, comment or doctype)."""
    if isinstance(node, Tag):
        return node.decode(formatter=FORMATTER)
    if isinstance(node, NavigableString):
        return node.output_ready(formatter=FORMATTER)
    return str(node)


def attributes(node: Tag) -> Dict[str, str]:
    """Attribute map with multi-valued attributes (e.g. ``class``) joined by spaces."""
    attrs: Dict[str, str] = {}
    for name, value in node.attrs.items():
        attrs[name] = " ".join(value) if isinstance(value, (list, tuple)) else str(value)
    return attrs


def attribute(node: Tag, name: str, default: str = "") -> str:
    return attributes(node).get(name, default)


def text_leaves(root: PageElement) -> List[NavigableString]:
    """Text-bearing strings under ``root`` in document order."""
    if isinstance(root, NavigableString):
        return [root] if is_text(root) else []
    return [node for node in root.descendants if is_text(node)]


def text_content(root: PageElement) -> str:
    """Raw concatenated text of ``root`` (same leaves the annotator splices)."""
    return "".join(str(leaf) for leaf in text_leaves(root))


def plain_text(root: PageElement) -> str:
    """Whitespace-normalized text content."""
    return normalize_whitespace(text_content(root))


def open_tag(tag: Tag) -> str:
    """Serialized start tag of ``tag`` without its children."""
    if tag.can_be_empty_element:
        return tag.decode(formatter=FORMATTER)
    shell = parse("").new_tag(tag.name, attrs=dict(tag.attrs))
    return shell.decode(formatter=FORMATTER)[: -len(close_tag(tag))]


def close_tag(tag: Tag) -> str:
    """Serialized end tag of ``tag`` (empty for void elements)."""
    if tag.can_be_empty_element:
        return ""
    return f"</{tag.name}>"


def has_descendant(tag: Tag, predicate: Callable[[Tag], bool]) -> bool:
    return any(predicate(el) for el in tag.find_all(True))


def first(root: Tag, name: Union[str, List[str]]) -> Optional[Tag]:
    found = root.find(name)
    return found if isinstance(found, Tag) else None
