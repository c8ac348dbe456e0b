"""InspectionIssue: one finding reported by an inspection."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from . import InspectionCategory, Severity
from .source_file import SourceFile

if TYPE_CHECKING:
    from brxm_inspect.inspections.base import Inspection


@dataclass(frozen=True, slots=True)
class TextRange:
    """1-based line/column span inside a file."""

    start_line: int
    start_column: int
    end_line: int
    end_column: int

    @classmethod
    def whole_line(cls, line: int) -> "TextRange":
        return cls(line, 1, line, 1)

    def to_dict(self) -> dict[str, int]:
        return {
            "start_line": self.start_line,
            "start_column": self.start_column,
            "end_line": self.end_line,
            "end_column": self.end_column,
        }


@dataclass(frozen=True, slots=True)
class QuickFix:
    """Describes a fix an IDE may offer.  Applying it is not our concern."""

    name: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class InspectionIssue:
    """Immutable finding, owned by the aggregator once returned.

    ``metadata`` is stored as a read-only mapping and is left out of the hash.
    """

    inspection: "Inspection"
    file: SourceFile
    severity: Severity
    message: str
    description: str = ""
    range: TextRange = field(default_factory=lambda: TextRange.whole_line(1))
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def inspection_id(self) -> str:
        return self.inspection.id

    @property
    def category(self) -> InspectionCategory:
        return self.inspection.category

    @property
    def line(self) -> int:
        return self.range.start_line

    def sort_key(self) -> tuple:
        return (self.file.relative_path, self.range.start_line, self.range.start_column, self.inspection.id)

    # ── serialisation ───────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "inspection_id": self.inspection.id,
            "inspection_name": self.inspection.name,
            "category": self.inspection.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "file": self.file.relative_path,
            "range": self.range.to_dict(),
        }
        if self.description:
            d["description"] = self.description
        if self.metadata:
            d["metadata"] = dict(self.metadata)
        return d
