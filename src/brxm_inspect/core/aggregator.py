"""Result aggregator: collects per-file issue batches and builds InspectionResults."""

from __future__ import annotations

import threading
from types import MappingProxyType
from typing import Sequence

from brxm_inspect.errors import AnalysisNotRunError
from brxm_inspect.model.issue import InspectionIssue
from brxm_inspect.model.results import AnalysisStatistics, InspectionResults
from brxm_inspect.model.source_file import SourceFile


class ResultAggregator:
    """Thread-safe sink for issue batches.

    Each ``add`` call appends one file's whole batch under the lock, so a
    file's issues are never interleaved with another file's.  Results only
    exist after :meth:`finalize`.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._batches: dict[str, list[InspectionIssue]] = {}
        self._results: InspectionResults | None = None

    def add(self, file: SourceFile, issues: Sequence[InspectionIssue]) -> None:
        if not issues:
            return
        with self._lock:
            if self._results is not None:
                raise RuntimeError("aggregator already finalized")
            self._batches.setdefault(file.relative_path, []).extend(issues)

    @property
    def pending_issues(self) -> int:
        with self._lock:
            return sum(len(batch) for batch in self._batches.values())

    def finalize(
        self,
        statistics: AnalysisStatistics | None = None,
        *,
        complete: bool = True,
    ) -> InspectionResults:
        """Freeze collected issues into an ``InspectionResults`` (files sorted by path)."""
        with self._lock:
            if self._results is None:
                grouped = {
                    path: tuple(self._batches[path]) for path in sorted(self._batches)
                }
                self._results = InspectionResults(
                    issues_by_file=MappingProxyType(grouped),
                    statistics=statistics or AnalysisStatistics(),
                    complete=complete,
                )
            return self._results

    @property
    def finalized(self) -> bool:
        return self._results is not None

    @property
    def results(self) -> InspectionResults:
        if self._results is None:
            raise AnalysisNotRunError("analysis has not been run; no results available")
        return self._results
