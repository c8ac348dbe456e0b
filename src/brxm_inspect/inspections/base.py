"""Inspection base class and the per-file context handed to ``inspect()``."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from brxm_inspect.model import FileType, InspectionCategory, Severity
from brxm_inspect.model.issue import InspectionIssue, QuickFix, TextRange
from brxm_inspect.model.source_file import SourceFile
from brxm_inspect.parsers import ParseResult

if TYPE_CHECKING:
    from brxm_inspect.core.cache import ParseCache
    from brxm_inspect.core.config import InspectionConfig
    from brxm_inspect.core.index import Indexer, ProjectIndex


@dataclass(frozen=True)
class InspectionContext:
    """Everything one inspection may look at for one file.

    Built once per file and shared by every inspection that runs on it, so
    all of them see the same parse result.
    """

    file: SourceFile
    content: str
    parse_result: ParseResult | None
    project_root: Path
    project_index: "ProjectIndex"
    config: "InspectionConfig"
    cache: "ParseCache"

    @property
    def file_type(self) -> FileType | None:
        return self.file.file_type

    @property
    def parsed(self) -> bool:
        return self.parse_result is not None and self.parse_result.ok

    def unit(self, kind: FileType) -> Any | None:
        """The parsed AST if it is of *kind*, else None (failed parse or other flavour)."""
        result = self.parse_result
        if result is None or not result.ok:
            return None
        if result.unit.kind is not kind:
            return None
        return result.unit.ast


class Inspection(ABC):
    """A single analysis rule.

    Subclasses set the descriptor attributes at class level and implement
    :meth:`inspect`.  Instances are shared across worker threads, so
    ``inspect`` must keep all of its working state local.
    """

    id: str = ""
    name: str = ""
    description: str = ""
    category: InspectionCategory = InspectionCategory.CONFIGURATION
    severity: Severity = Severity.WARNING
    applicable_file_types: frozenset[FileType] = frozenset()
    # Indexers whose entries this inspection reads from the project index.
    indexers: tuple["Indexer", ...] = ()

    @abstractmethod
    def inspect(self, context: InspectionContext) -> list[InspectionIssue]:
        """Return the issues found in ``context.file``."""
        ...

    def applies_to(self, file_type: FileType | None) -> bool:
        return file_type is not None and file_type in self.applicable_file_types

    def quick_fixes(self, issue: InspectionIssue) -> list[QuickFix]:
        return []

    def _issue(
        self,
        context: InspectionContext,
        message: str,
        *,
        range: TextRange | None = None,
        description: str = "",
        severity: Severity | None = None,
        **metadata: Any,
    ) -> InspectionIssue:
        """Create an issue with consistent structure."""
        return InspectionIssue(
            inspection=self,
            file=context.file,
            severity=severity or self.severity,
            message=message,
            description=description or self.description,
            range=range or TextRange.whole_line(1),
            metadata=dict(metadata),
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"
