"""Engine: indexes the project, runs inspections per file, aggregates issues.

Run layout::

    scan (optional) -> index pass -> freeze index -> per-file inspection
    batches (worker pool or inline) -> aggregator -> InspectionResults

A file's batch is one unit of work: it is read and parsed once, and every
selected inspection sees that same parse result.  Progress is reported from
the coordinating thread, once per file, after its batch has been merged.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from concurrent.futures import (
    Future,
    ThreadPoolExecutor,
    TimeoutError as FuturesTimeoutError,
    as_completed,
)
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Sequence

from brxm_inspect.errors import AnalysisNotRunError, InspectionTimeout, ScanError
from brxm_inspect.inspections.base import Inspection, InspectionContext
from brxm_inspect.model import FileType
from brxm_inspect.model.issue import InspectionIssue
from brxm_inspect.model.results import AnalysisStatistics, InspectionResults
from brxm_inspect.model.source_file import SourceFile
from brxm_inspect.parsers import ParseResult, adapter_for

from .aggregator import ResultAggregator
from .cache import ParseCache
from .config import InspectionConfig
from .discover import FileScanner
from .index import IndexEntry, Indexer, ProjectIndex
from .registry import InspectionRegistry

_logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


@dataclass
class FileOutcome:
    """What one worker reports back for one file."""

    file: SourceFile
    issues: list[InspectionIssue] = field(default_factory=list)
    inspections_run: int = 0
    failures: int = 0
    timeouts: int = 0
    parse_failed: bool = False


class InspectionEngine:
    """Runs the registry's inspections over a set of files.

    One engine runs one analysis at a time.  The parse cache may be shared
    between engines and runs; the project index and results belong to a
    single run.
    """

    def __init__(
        self,
        config: InspectionConfig | None = None,
        registry: InspectionRegistry | None = None,
        cache: ParseCache | None = None,
    ) -> None:
        self.config = config or InspectionConfig.default()
        self.registry = registry if registry is not None else InspectionRegistry.default()
        self.cache = cache if cache is not None else ParseCache(enabled=self.config.cache_enabled)
        self._cancelled = threading.Event()
        self._aggregator: ResultAggregator | None = None
        self._statistics: AnalysisStatistics | None = None
        self._index = ProjectIndex.empty()
        self._selection: dict[FileType | None, list[Inspection]] = {}
        # Single-thread executors used to enforce the per-inspection timeout,
        # one per calling thread, all shut down when the run ends.
        self._timeout_local = threading.local()
        self._timeout_pools: list[ThreadPoolExecutor] = []
        self._timeout_pools_lock = threading.Lock()

    # ── public API ──────────────────────────────────────────────────

    def analyze(
        self,
        project_root: Path,
        files: Sequence[SourceFile] | None = None,
        progress: ProgressCallback | None = None,
    ) -> InspectionResults:
        """Analyze *files* (scanned from *project_root* when None).

        Raises ``ScanError`` for a missing root before doing any work.  If the
        run is cancelled or interrupted, the issues gathered so far are still
        finalized and available from :meth:`get_results` with
        ``complete=False``.
        """
        root = Path(project_root)
        if not root.is_dir():
            raise ScanError(f"project root does not exist or is not a directory: {root}")
        root = root.resolve()
        if files is None:
            files = FileScanner(self.config).scan(root)

        self._cancelled.clear()
        self._aggregator = ResultAggregator()
        self._statistics = None
        self._selection = {}
        self._timeout_local = threading.local()
        timeout = self.config.resolved_timeout()
        # Selection is computed up front so workers only ever read it.
        for file_type in {f.file_type for f in files}:
            self.inspections_for(file_type)

        started = time.monotonic()
        hits_before, misses_before = self.cache.hits, self.cache.misses
        counters = AnalysisStatistics()
        outcomes = None
        complete = False
        try:
            if self.config.enabled:
                self._index = self._build_index(files)
                counters = dataclasses.replace(counters, index_entries=len(self._index))
                outcomes = self._dispatch(root, files, timeout)
                for outcome in outcomes:
                    self._aggregator.add(outcome.file, outcome.issues)
                    counters = dataclasses.replace(
                        counters,
                        files_analyzed=counters.files_analyzed + 1,
                        inspections_run=counters.inspections_run + outcome.inspections_run,
                        inspection_failures=counters.inspection_failures + outcome.failures,
                        inspection_timeouts=counters.inspection_timeouts + outcome.timeouts,
                        parse_failures=counters.parse_failures + int(outcome.parse_failed),
                    )
                    if progress is not None:
                        progress(outcome.file.relative_path)
            else:
                _logger.info("Inspections are disabled by configuration; nothing to do")
            complete = not self._cancelled.is_set()
        except BaseException:
            self._cancelled.set()
            raise
        finally:
            if outcomes is not None:
                outcomes.close()
            self._shutdown_timeout_pools()
            results = self._finalize(counters, started, hits_before, misses_before, complete)
        return results

    def cancel(self) -> None:
        """Ask a running :meth:`analyze` to stop; files not yet started are skipped."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def get_results(self) -> InspectionResults:
        if self._aggregator is None:
            raise AnalysisNotRunError("analyze() has not been called")
        return self._aggregator.results

    def statistics(self) -> AnalysisStatistics:
        if self._statistics is None:
            raise AnalysisNotRunError("analyze() has not completed")
        return self._statistics

    @property
    def project_index(self) -> ProjectIndex:
        return self._index

    def inspections_for(self, file_type: FileType | None) -> list[Inspection]:
        """Enabled inspections for *file_type* at or above the minimum severity, by id."""
        selected = self._selection.get(file_type)
        if selected is None:
            config = self.config
            selected = [
                inspection
                for inspection in self.registry.all()
                if inspection.applies_to(file_type)
                and config.is_enabled(inspection)
                and config.effective_severity(inspection).at_least(config.min_severity)
            ]
            self._selection[file_type] = selected
        return selected

    # ── run phases ──────────────────────────────────────────────────

    def _finalize(
        self,
        counters: AnalysisStatistics,
        started: float,
        hits_before: int,
        misses_before: int,
        complete: bool,
    ) -> InspectionResults:
        assert self._aggregator is not None
        self._statistics = dataclasses.replace(
            counters,
            cache_hits=self.cache.hits - hits_before,
            cache_misses=self.cache.misses - misses_before,
            duration_seconds=time.monotonic() - started,
        )
        results = self._aggregator.finalize(self._statistics, complete=complete)
        _logger.info(
            "Analyzed %d file(s) in %.2fs: %d issue(s)%s",
            self._statistics.files_analyzed,
            self._statistics.duration_seconds,
            results.total_issues,
            "" if complete else " (incomplete)",
        )
        return results

    def _indexers(self, files: Sequence[SourceFile]) -> list[Indexer]:
        by_id: dict[str, Indexer] = {}
        for file_type in {f.file_type for f in files}:
            for inspection in self.inspections_for(file_type):
                for indexer in inspection.indexers:
                    by_id.setdefault(indexer.id, indexer)
        return [by_id[key] for key in sorted(by_id)]

    def _build_index(self, files: Sequence[SourceFile]) -> ProjectIndex:
        """Run every needed indexer over *files*, merge and freeze.

        Entries are produced in parallel when enabled but merged here, in the
        coordinating thread, and the index is frozen before any inspection
        starts.
        """
        indexers = self._indexers(files)
        if not indexers:
            return ProjectIndex.empty()

        work = [
            (file, [ix for ix in indexers if file.file_type in ix.file_types])
            for file in files
        ]
        work = [(file, ixs) for file, ixs in work if ixs]

        index = ProjectIndex()
        if self.config.parallel and len(work) > 1:
            with ThreadPoolExecutor(
                max_workers=self.config.max_threads, thread_name_prefix="brxm-index"
            ) as pool:
                for entries in pool.map(lambda item: self._index_file(*item), work):
                    index.extend(entries)
        else:
            for file, ixs in work:
                if self._cancelled.is_set():
                    break
                index.extend(self._index_file(file, ixs))
        index.freeze()
        _logger.info("Project index built: %d entr(y/ies) from %d file(s)", len(index), len(work))
        return index

    def _index_file(self, file: SourceFile, indexers: Iterable[Indexer]) -> list[IndexEntry]:
        if self._cancelled.is_set():
            return []
        parsed = self._read_and_parse(file)
        if parsed is None:
            return []
        content, result = parsed
        if result is None or not result.ok:
            return []
        entries: list[IndexEntry] = []
        for indexer in indexers:
            try:
                entries.extend(indexer.index(file, result.unit, content))
            except Exception:
                _logger.exception("Indexer '%s' failed on %s", indexer.id, file.relative_path)
        return entries

    def _dispatch(
        self,
        root: Path,
        files: Sequence[SourceFile],
        timeout: float | None,
    ) -> Iterable[FileOutcome]:
        """Yield one outcome per analyzed file, in completion order."""
        if not self.config.parallel or self.config.max_threads == 1 or len(files) <= 1:
            for file in files:
                if self._cancelled.is_set():
                    _logger.info("Analysis cancelled; %s and later files skipped", file.relative_path)
                    return
                yield self._analyze_file(root, file, timeout)
            return

        pool = ThreadPoolExecutor(
            max_workers=self.config.max_threads, thread_name_prefix="brxm-inspect"
        )
        futures: list[Future[FileOutcome | None]] = []
        try:
            futures = [pool.submit(self._analyze_file, root, f, timeout) for f in files]
            for future in as_completed(futures):
                outcome = future.result()
                if outcome is not None:
                    yield outcome
                if self._cancelled.is_set():
                    break
        finally:
            # Reached on normal completion, cancellation, an exception raised
            # by the consumer (e.g. the progress callback) or generator close.
            for future in futures:
                future.cancel()
            pool.shutdown(wait=True)
            if self._cancelled.is_set():
                skipped = sum(1 for f in futures if f.cancelled())
                _logger.info("Analysis cancelled; %d queued file(s) skipped", skipped)

    def _read_and_parse(self, file: SourceFile) -> tuple[str, ParseResult | None] | None:
        """Content and parse result for *file*; None if it cannot be read.

        The file is stat'ed before it is read: the cache stores the parse under
        that fingerprint.
        """
        try:
            fingerprint = file.fingerprint()
            content = file.read_text()
        except OSError as exc:
            _logger.warning("Cannot read %s: %s", file.relative_path, exc)
            return None
        adapter = adapter_for(file.file_type)
        if adapter is None:
            return content, None
        if self.config.cache_enabled:
            result = self.cache.get_or_parse(file, adapter, content, fingerprint)
        else:
            result = adapter.parse(content)
        if not result.ok:
            first = result.errors[0] if result.errors else None
            _logger.debug(
                "Parse failure in %s%s",
                file.relative_path,
                f" at {first.line}:{first.column}: {first.message}" if first else "",
            )
        return content, result

    def _analyze_file(
        self,
        root: Path,
        file: SourceFile,
        timeout: float | None,
    ) -> FileOutcome | None:
        if self._cancelled.is_set():
            return None
        outcome = FileOutcome(file=file)
        inspections = self.inspections_for(file.file_type)
        if not inspections:
            return outcome

        parsed = self._read_and_parse(file)
        if parsed is None:
            return outcome
        content, result = parsed
        outcome.parse_failed = result is not None and not result.ok

        context = InspectionContext(
            file=file,
            content=content,
            parse_result=result,
            project_root=root,
            project_index=self._index,
            config=self.config,
            cache=self.cache,
        )
        min_severity = self.config.min_severity
        for inspection in inspections:
            if self._cancelled.is_set():
                break
            outcome.inspections_run += 1
            try:
                raw = self._run_inspection(inspection, context, timeout)
            except InspectionTimeout as exc:
                outcome.timeouts += 1
                _logger.warning("%s; skipped", exc)
                continue
            except Exception:
                outcome.failures += 1
                _logger.exception(
                    "Inspection '%s' failed on %s; skipped", inspection.id, file.relative_path
                )
                continue

            override = self.config.override_for(inspection.id)
            forced = override.severity if override is not None else None
            for issue in raw:
                if forced is not None and issue.severity is not forced:
                    issue = dataclasses.replace(issue, severity=forced)
                if issue.severity.at_least(min_severity):
                    outcome.issues.append(issue)
        return outcome

    # ── per-inspection timeout ──────────────────────────────────────

    def _run_inspection(
        self,
        inspection: Inspection,
        context: InspectionContext,
        timeout: float | None,
    ) -> list[InspectionIssue]:
        if timeout is None:
            return list(inspection.inspect(context))
        pool = self._timeout_pool()
        future = pool.submit(inspection.inspect, context)
        try:
            return list(future.result(timeout=timeout))
        except FuturesTimeoutError:
            # The stuck call cannot be interrupted; abandon its executor so the
            # next inspection gets a fresh thread.
            future.cancel()
            self._timeout_local.pool = None
            pool.shutdown(wait=False, cancel_futures=True)
            raise InspectionTimeout(
                f"Inspection '{inspection.id}' timed out after {timeout:.0f}s "
                f"on {context.file.relative_path}"
            ) from None

    def _timeout_pool(self) -> ThreadPoolExecutor:
        pool = getattr(self._timeout_local, "pool", None)
        if pool is None:
            pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="brxm-inspection")
            self._timeout_local.pool = pool
            with self._timeout_pools_lock:
                self._timeout_pools.append(pool)
        return pool

    def _shutdown_timeout_pools(self) -> None:
        with self._timeout_pools_lock:
            pools, self._timeout_pools = self._timeout_pools, []
        for pool in pools:
            pool.shutdown(wait=False, cancel_futures=True)
