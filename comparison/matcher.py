"""Cross-document matching of structural units.

Every equivalence rule is a disjunction of equality tests, so each kind is
described by an ordered list of keys: a unit is matched when any of its keys
occurs among the same-kind units of the other side. Keys are listed strongest
first (byte-identical markup before weaker structural fields), which is also
the order used to pick the counterpart unit.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Callable, Dict, Hashable, List, Optional, Sequence, Tuple

from rapidfuzz import fuzz

from comparison.models import MatchStatus, StructuralUnit, UnitKind, UnitMatch
from utils.logging import logger

KeyFn = Callable[[StructuralUnit], Optional[Hashable]]


def _markup(unit: StructuralUnit) -> Optional[Hashable]:
    return unit.markup


def _fields(*names: str) -> KeyFn:
    def key(unit: StructuralUnit) -> Optional[Hashable]:
        return tuple(unit.value(name) for name in names)
    return key


def _non_empty(name: str) -> KeyFn:
    def key(unit: StructuralUnit) -> Optional[Hashable]:
        value = unit.value(name)
        return value if value else None
    return key


# (key name, key function) per kind, strongest first
EQUIVALENCE_RULES: Dict[UnitKind, List[Tuple[str, KeyFn]]] = {
    UnitKind.IMAGE: [
        ("markup", _markup),
        ("src", _fields("src")),
        ("alt", _non_empty("alt")),
    ],
    UnitKind.HEADER: [("level+text", _fields("level", "text"))],
    UnitKind.LINK: [("href+text", _fields("href", "text"))],
    UnitKind.TABLE: [
        ("markup", _markup),
        ("shape", _fields("rows", "cols")),
    ],
    UnitKind.LIST: [
        ("markup", _markup),
        ("type+items", _fields("list_type", "items")),
    ],
    UnitKind.BLOCKQUOTE: [("text", _fields("text"))],
    UnitKind.CODE: [("text+block", _fields("text", "is_block"))],
    UnitKind.FORMATTED: [("text+format", _fields("text", "format"))],
    UnitKind.STYLED: [
        ("markup", _markup),
        ("style+text", _fields("style", "text")),
    ],
    UnitKind.PLAIN_BLOCK: [],  # deferred to the text reconciler
}

_missing = set(UnitKind) - set(EQUIVALENCE_RULES)
if _missing:
    raise RuntimeError(f"No equivalence rule for unit kinds: {sorted(kind.value for kind in _missing)}")


def _build_index(units: Sequence[StructuralUnit]) -> Dict[Tuple[UnitKind, str, Hashable], List[int]]:
    index: Dict[Tuple[UnitKind, str, Hashable], List[int]] = defaultdict(list)
    for position, unit in enumerate(units):
        for key_name, key_fn in EQUIVALENCE_RULES[unit.kind]:
            value = key_fn(unit)
            if value is not None:
                index[(unit.kind, key_name, value)].append(position)
    return index


def _pick_counterpart(unit: StructuralUnit, candidates: List[int], other: Sequence[StructuralUnit]) -> int:
    """Prefer the candidate with the most similar text, then the nearest in document order."""
    if len(candidates) == 1:
        return candidates[0]

    def score(position: int) -> Tuple[float, int]:
        similarity = fuzz.ratio(unit.plain_text, other[position].plain_text)
        return (-similarity, abs(position - unit.sequence_index))

    return min(candidates, key=score)


def is_equivalent(unit: StructuralUnit, other: StructuralUnit) -> bool:
    """True if ``other`` satisfies the equivalence rule of ``unit``'s kind."""
    if unit.kind is not other.kind:
        return False
    for _, key_fn in EQUIVALENCE_RULES[unit.kind]:
        value = key_fn(unit)
        if value is not None and value == key_fn(other):
            return True
    return False


def match_units(
    own: Sequence[StructuralUnit],
    other: Sequence[StructuralUnit],
) -> Dict[int, UnitMatch]:
    """
    Decide for each unit of ``own`` whether an equivalent unit exists in ``other``.

    Args:
        own: Units of the side being annotated
        other: Units of the opposite side

    Returns:
        Mapping from position in ``own`` to its UnitMatch. Plain blocks are
        DEFERRED; other units are MATCHED (with the chosen counterpart
        position) or UNMATCHED.
    """
    index = _build_index(other)
    results: Dict[int, UnitMatch] = {}

    for position, unit in enumerate(own):
        rules = EQUIVALENCE_RULES[unit.kind]
        if not rules:
            results[position] = UnitMatch(MatchStatus.DEFERRED)
            continue

        match = UnitMatch(MatchStatus.UNMATCHED)
        for key_name, key_fn in rules:
            value = key_fn(unit)
            if value is None:
                continue
            candidates = index.get((unit.kind, key_name, value))
            if candidates:
                counterpart = _pick_counterpart(unit, candidates, other)
                match = UnitMatch(MatchStatus.MATCHED, counterpart)
                break

        if not match.matched:
            logger.debug("Unit %s has no counterpart", unit.identity_key)
        results[position] = match

    return results
