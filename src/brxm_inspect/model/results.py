"""InspectionResults: the immutable, schema-aligned artifact of one run."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

from brxm_inspect import __version__

from . import InspectionCategory, Severity
from .issue import InspectionIssue


@dataclass(frozen=True, slots=True)
class AnalysisStatistics:
    """Counters collected while the engine ran.

    ``cache_hits`` and ``cache_misses`` count parse-cache lookups, not files: a
    file read by the index pass is looked up again by its inspection batch.
    Both stay 0 when the cache is disabled.
    """

    files_analyzed: int = 0
    inspections_run: int = 0
    inspection_failures: int = 0
    inspection_timeouts: int = 0
    parse_failures: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    index_entries: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class InspectionResults:
    """Aggregate of all issues found in a run.

    Built once by ``core.aggregator.ResultAggregator.finalize``; files are in
    path order and each file keeps the order its inspections emitted issues.
    """

    issues_by_file: Mapping[str, tuple[InspectionIssue, ...]] = field(
        default_factory=lambda: MappingProxyType({}),
    )
    statistics: AnalysisStatistics = field(default_factory=AnalysisStatistics)
    complete: bool = True
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
    )

    # ── summary ─────────────────────────────────────────────────────

    @property
    def issues(self) -> list[InspectionIssue]:
        return [i for batch in self.issues_by_file.values() for i in batch]

    @property
    def total_issues(self) -> int:
        return sum(len(batch) for batch in self.issues_by_file.values())

    @property
    def counts_by_severity(self) -> dict[Severity, int]:
        counts = {s: 0 for s in Severity.ordered()}
        for issue in self.issues:
            counts[issue.severity] += 1
        return counts

    @property
    def counts_by_category(self) -> dict[InspectionCategory, int]:
        counts = {c: 0 for c in InspectionCategory}
        for issue in self.issues:
            counts[issue.category] += 1
        return counts

    @property
    def issues_by_category(self) -> dict[InspectionCategory, list[InspectionIssue]]:
        """Non-empty categories only, in declared category order."""
        grouped: dict[InspectionCategory, list[InspectionIssue]] = {}
        for category in InspectionCategory:
            matching = [i for i in self.issues if i.category is category]
            if matching:
                grouped[category] = matching
        return grouped

    @property
    def error_count(self) -> int:
        return self.counts_by_severity[Severity.ERROR]

    @property
    def warning_count(self) -> int:
        return self.counts_by_severity[Severity.WARNING]

    @property
    def info_count(self) -> int:
        return self.counts_by_severity[Severity.INFO]

    @property
    def hint_count(self) -> int:
        return self.counts_by_severity[Severity.HINT]

    # ── serialisation ───────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        """Produce the JSON document described by inspection_results.schema.json."""
        stats = self.statistics
        return {
            "schema_version": "inspection_results_v1",
            "tool_version": __version__,
            "created_at": self.created_at,
            "summary": {
                "total_issues": self.total_issues,
                "complete": self.complete,
                "files_analyzed": stats.files_analyzed,
                "parse_failures": stats.parse_failures,
                "inspection_failures": stats.inspection_failures,
                "inspection_timeouts": stats.inspection_timeouts,
                "by_severity": {s.value: n for s, n in self.counts_by_severity.items()},
                "by_category": {c.value: n for c, n in self.counts_by_category.items()},
            },
            "statistics": stats.to_dict(),
            "files": [
                {"path": path, "issues": [i.to_dict() for i in batch]}
                for path, batch in self.issues_by_file.items()
            ],
        }
