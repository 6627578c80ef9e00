"""Text normalization utilities for comparison."""
from __future__ import annotations

import re
from typing import List, Optional, Tuple

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """
    Collapse internal whitespace runs to a single space and strip both ends.

    This is the normalization applied to every structural unit's plain text,
    so equality of normalized text is insensitive to indentation and line
    wrapping in the source markup.

    Examples:
        >>> normalize_whitespace("  Multiple   Spaces  ")
        'Multiple Spaces'
        >>> normalize_whitespace("line\\n\\tbreak")
        'line break'
    """
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_with_offsets(pieces: List[str]) -> Tuple[str, List[List[Optional[int]]]]:
    """
    Normalize the concatenation of ``pieces`` and map every raw character back.

    Whitespace is collapsed across piece boundaries exactly like
    :func:`normalize_whitespace` applied to ``"".join(pieces)``.

    Args:
        pieces: Raw strings in document order (e.g. text leaves of one element)

    Returns:
        Tuple of (normalized text, offsets) where ``offsets[p][c]`` is the
        index in the normalized text that raw character ``c`` of piece ``p``
        contributes to, or None for trimmed leading/trailing whitespace.
        All characters of one collapsed whitespace run share the index of the
        single space they became.
    """
    chars: List[str] = []
    offsets: List[List[Optional[int]]] = []
    pending_space: List[Tuple[int, int]] = []

    for p, piece in enumerate(pieces):
        piece_offsets: List[Optional[int]] = [None] * len(piece)
        offsets.append(piece_offsets)
        for c, char in enumerate(piece):
            if char.isspace():
                pending_space.append((p, c))
                continue
            if pending_space:
                if chars:
                    space_index = len(chars)
                    chars.append(" ")
                    for sp, sc in pending_space:
                        offsets[sp][sc] = space_index
                pending_space = []
            piece_offsets[c] = len(chars)
            chars.append(char)

    # Trailing whitespace stays unmapped (trimmed)
    return "".join(chars), offsets
