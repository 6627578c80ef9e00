"""Word-level text reconciliation between the two sides of a comparison."""
from __future__ import annotations

# NOTE: Using difflib.SequenceMatcher for token-list alignment.
# rapidfuzz only supports string comparison, not list-of-tokens matching with opcodes.
from difflib import SequenceMatcher
from typing import List, Sequence, Tuple

from comparison.models import DiffSpan, SpanKind
from comparison.tokenizer import is_whitespace_token, tokenize_sentences, tokenize_words
from config.settings import settings
from utils.logging import logger

Opcode = Tuple[str, int, int, int, int]


def _tokenize(left_text: str, right_text: str) -> Tuple[List[str], List[str]]:
    left_tokens = tokenize_words(left_text)
    right_tokens = tokenize_words(right_text)
    limit = settings.max_diff_tokens
    if limit and max(len(left_tokens), len(right_tokens)) > limit:
        logger.warning(
            "Word diff budget exceeded (%d/%d tokens, limit %d); falling back to sentence tokens",
            len(left_tokens),
            len(right_tokens),
            limit,
        )
        return tokenize_sentences(left_text), tokenize_sentences(right_text)
    return left_tokens, right_tokens


def _merge_whitespace_gaps(opcodes: List[Opcode], left_tokens: Sequence[str]) -> List[Opcode]:
    """
    Fold change runs separated only by whitespace into one replace.

    "a b c" -> "x y z" otherwise aligns the two spaces and reports three
    separate one-word replacements.
    """
    merged: List[Opcode] = []
    for op in opcodes:
        tag = op[0]
        if (
            tag != "equal"
            and len(merged) >= 2
            and merged[-1][0] == "equal"
            and merged[-2][0] != "equal"
            and all(is_whitespace_token(tok) for tok in left_tokens[merged[-1][1]:merged[-1][2]])
        ):
            merged.pop()
            previous = merged.pop()
            op = ("replace", previous[1], op[2], previous[3], op[4])
        merged.append(op)
    return merged


def _append(spans: List[DiffSpan], kind: SpanKind, text: str) -> None:
    if not text:
        return
    if spans and spans[-1].kind is kind:
        spans[-1] = DiffSpan(kind, spans[-1].text + text)
    else:
        spans.append(DiffSpan(kind, text))


def diff_words(left_text: str, right_text: str) -> List[DiffSpan]:
    """
    Interleaved word diff: kept, removed and inserted runs in reading order.

    A replaced region yields its removed run followed by its inserted run.
    """
    left_tokens, right_tokens = _tokenize(left_text, right_text)
    matcher = SequenceMatcher(None, left_tokens, right_tokens, autojunk=False)
    opcodes = _merge_whitespace_gaps(matcher.get_opcodes(), left_tokens)

    spans: List[DiffSpan] = []
    for tag, i1, i2, j1, j2 in opcodes:
        if tag == "equal":
            _append(spans, SpanKind.KEPT, "".join(left_tokens[i1:i2]))
            continue
        if tag in ("replace", "delete"):
            _append(spans, SpanKind.REMOVED, "".join(left_tokens[i1:i2]))
        if tag in ("replace", "insert"):
            _append(spans, SpanKind.INSERTED, "".join(right_tokens[j1:j2]))
    return spans


def reconcile(left_text: str, right_text: str) -> Tuple[List[DiffSpan], List[DiffSpan]]:
    """
    Reconcile two texts into per-side span lists.

    Returns:
        Tuple of (left_spans, right_spans). Left spans are kept/removed and
        concatenate to ``left_text``; right spans are kept/inserted and
        concatenate to ``right_text``.
    """
    left_spans: List[DiffSpan] = []
    right_spans: List[DiffSpan] = []
    for span in diff_words(left_text, right_text):
        if span.kind is not SpanKind.INSERTED:
            _append(left_spans, span.kind, span.text)
        if span.kind is not SpanKind.REMOVED:
            _append(right_spans, span.kind, span.text)
    return left_spans, right_spans


def has_changes(spans: Sequence[DiffSpan]) -> bool:
    return any(span.kind is not SpanKind.KEPT for span in spans)


def count_spans(spans: Sequence[DiffSpan], kind: SpanKind) -> int:
    return sum(1 for span in spans if span.kind is kind)


def distribute_spans(
    texts: Sequence[str],
    spans: Sequence[DiffSpan],
    separator: str = " ",
) -> List[List[DiffSpan]]:
    """
    Cut spans computed over ``separator.join(texts)`` back into one list per text.

    Characters of the separators are dropped; a span crossing a text boundary
    is split between the texts it covers.
    """
    bounds: List[Tuple[int, int]] = []
    position = 0
    for index, text in enumerate(texts):
        if index:
            position += len(separator)
        bounds.append((position, position + len(text)))
        position += len(text)

    pieces: List[List[DiffSpan]] = [[] for _ in texts]
    span_start = 0
    current = 0
    for span in spans:
        span_end = span_start + len(span.text)
        while current < len(bounds) and bounds[current][1] <= span_start:
            current += 1
        index = current
        while index < len(bounds) and bounds[index][0] < span_end:
            start, end = bounds[index]
            lo = max(start, span_start)
            hi = min(end, span_end)
            if lo < hi:
                _append(pieces[index], span.kind, span.text[lo - span_start:hi - span_start])
            if end > span_end:
                break
            index += 1
        span_start = span_end
    return pieces
