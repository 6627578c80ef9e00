"""Shared data models for extraction, matching and annotation."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Literal, Mapping, Optional, Union

FieldValue = Union[str, int, bool]
Side = Literal["left", "right"]


class UnitKind(str, Enum):
    IMAGE = "image"
    TABLE = "table"
    HEADER = "header"
    LIST = "list"
    LINK = "link"
    BLOCKQUOTE = "blockquote"
    CODE = "code"
    FORMATTED = "formatted"
    STYLED = "styled"
    PLAIN_BLOCK = "plainBlock"


@dataclass(frozen=True)
class StructuralUnit:
    """A typed, non-overlapping fragment of one document.

    ``leading`` and ``trailing`` hold the markup between units (wrapper
    tags, whitespace, comments) so that concatenating
    ``leading + markup + trailing`` over all units reproduces the document.
    """
    kind: UnitKind
    sequence_index: int
    identity_key: str
    comparable_fields: Mapping[str, FieldValue]
    markup: str
    plain_text: str
    leading: str = ""
    trailing: str = ""

    def value(self, name: str, default: FieldValue = "") -> FieldValue:
        return self.comparable_fields.get(name, default)


class MatchStatus(str, Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    DEFERRED = "deferred"  # plain block, left to the text reconciler


@dataclass(frozen=True)
class UnitMatch:
    status: MatchStatus
    counterpart: Optional[int] = None  # index into the other side's unit list

    @property
    def matched(self) -> bool:
        return self.status is MatchStatus.MATCHED


class SpanKind(str, Enum):
    KEPT = "kept"
    INSERTED = "inserted"
    REMOVED = "removed"


@dataclass(frozen=True)
class DiffSpan:
    kind: SpanKind
    text: str


class DiffKind(str, Enum):
    EQUAL = "equal"
    INSERT = "insert"
    DELETE = "delete"


class DiffScope(str, Enum):
    TEXT = "text"      # plain text run
    MARKUP = "markup"  # markup emitted verbatim (may embed inline markers)
    UNIT = "unit"      # whole structural unit added or removed


@dataclass(frozen=True)
class DiffResult:
    kind: DiffKind
    content: str
    scope: DiffScope = DiffScope.TEXT
    label: Optional[str] = None

    def to_dict(self) -> dict:
        payload = {"type": self.kind.value, "content": self.content, "scope": self.scope.value}
        if self.label:
            payload["label"] = self.label
        return payload


@dataclass
class ComparisonSummary:
    additions: int = 0
    deletions: int = 0

    @property
    def changes(self) -> int:
        return self.additions + self.deletions

    def record_additions(self, count: int = 1) -> None:
        if count < 0:
            raise ValueError(f"Cannot record a negative number of additions: {count}")
        self.additions += count

    def record_deletions(self, count: int = 1) -> None:
        if count < 0:
            raise ValueError(f"Cannot record a negative number of deletions: {count}")
        self.deletions += count

    def to_dict(self) -> Dict[str, int]:
        return {"additions": self.additions, "deletions": self.deletions, "changes": self.changes}


@dataclass
class ComparisonResult:
    left_diffs: List[DiffResult] = field(default_factory=list)
    right_diffs: List[DiffResult] = field(default_factory=list)
    summary: ComparisonSummary = field(default_factory=ComparisonSummary)

    def to_dict(self) -> dict:
        return {
            "leftDiffs": [diff.to_dict() for diff in self.left_diffs],
            "rightDiffs": [diff.to_dict() for diff in self.right_diffs],
            "summary": self.summary.to_dict(),
        }
