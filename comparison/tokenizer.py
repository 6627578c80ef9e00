"""Token sequencing for word-level diffing.

Tokens partition the input: concatenating them reproduces the original
string exactly, which is what lets the reconciler hand back spans that
round-trip to each side's text.
"""
from __future__ import annotations

import re
from typing import List

# A word run, a whitespace run, or one punctuation/symbol character
_WORD_TOKEN_RE = re.compile(r"\w+|\s+|[^\w\s]", re.UNICODE)

# A sentence up to and including its terminator and trailing whitespace
_SENTENCE_TOKEN_RE = re.compile(r"[^.!?\n]*(?:[.!?]+|\n|$)\s*", re.UNICODE)


def tokenize_words(text: str) -> List[str]:
    """
    Split text into word, whitespace and punctuation tokens.

    Examples:
        >>> tokenize_words("the cat sat")
        ['the', ' ', 'cat', ' ', 'sat']
        >>> tokenize_words("Hello, world!")
        ['Hello', ',', ' ', 'world', '!']
    """
    if not text:
        return []
    return _WORD_TOKEN_RE.findall(text)


def tokenize_sentences(text: str) -> List[str]:
    """Split text into sentence tokens (coarser fallback for very long inputs)."""
    if not text:
        return []
    return [token for token in _SENTENCE_TOKEN_RE.findall(text) if token]


def is_whitespace_token(token: str) -> bool:
    return bool(token) and token.isspace()
