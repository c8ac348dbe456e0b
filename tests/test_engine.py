"""Tests for the inspection engine: dispatch, filtering, degradation, cancellation."""

from __future__ import annotations

import threading

import pytest

from brxm_inspect.core.cache import ParseCache
from brxm_inspect.core.config import InspectionConfig
from brxm_inspect.core.discover import FileScanner
from brxm_inspect.core.engine import InspectionEngine
from brxm_inspect.core.registry import InspectionRegistry
from brxm_inspect.errors import AnalysisNotRunError, ScanError
from brxm_inspect.inspections import default_inspections
from brxm_inspect.inspections.base import Inspection
from brxm_inspect.model import FileType, InspectionCategory, Severity
from brxm_inspect.model.issue import TextRange
from brxm_inspect.model.source_file import SourceFile


class KeyLineInspection(Inspection):
    """Reports every top-level YAML key, one issue per key."""

    id = "test.key-line"
    name = "Key line"
    category = InspectionCategory.CONFIGURATION
    severity = Severity.WARNING
    applicable_file_types = frozenset({FileType.YAML})

    def inspect(self, context):
        documents = context.unit(FileType.YAML)
        if documents is None:
            return []
        return [
            self._issue(
                context,
                f"key {key.value}",
                range=TextRange.whole_line(key.start_mark.line + 1),
            )
            for document in documents
            for key, _ in document.value
        ]


class HintInspection(KeyLineInspection):
    id = "test.hint"
    severity = Severity.HINT

    def inspect(self, context):
        return [self._issue(context, "hint")]


class BrokenInspection(Inspection):
    id = "test.broken"
    severity = Severity.ERROR
    applicable_file_types = frozenset({FileType.YAML})

    def inspect(self, context):
        raise RuntimeError("boom")


class BlockingInspection(Inspection):
    id = "test.blocking"
    severity = Severity.ERROR
    applicable_file_types = frozenset({FileType.YAML})

    def __init__(self) -> None:
        self.release = threading.Event()

    def inspect(self, context):
        self.release.wait(10)
        return [self._issue(context, "late")]


YAML_FILES = {f"module{n}/config.yaml": f"alpha: {n}\nbeta: {n}\n" for n in range(6)}

UUID_NODE = """\
definitions:
  config:
    /hippo:configuration/hippo:modules/news:
      jcr:primaryType: hipposys:module
      jcr:uuid: cafebabe-cafe-babe-cafe-babecafebabe
"""

MIXED_SITE = {
    "pom.xml": (
        "<project>\n"
        "  <artifactId>site</artifactId>\n"
        "  <version>0.1.0-SNAPSHOT</version>\n"
        "</project>\n"
    ),
    "site/src/main/java/NewsComponent.java": (
        "public class NewsComponent extends BaseHstComponent {\n"
        "    public void doBeforeRender(HstRequest request, HstResponse response) {\n"
        "        String title = getParameter(\"title\");\n"
        "        request.setAttribute(\"title\", title.trim());\n"
        "    }\n"
        "}\n"
    ),
    "repository-data/application/news.yaml": UUID_NODE,
    "repository-data/development/news-copy.yaml": UUID_NODE,
}


def _engine(*inspections, **config) -> InspectionEngine:
    return InspectionEngine(
        InspectionConfig(**config),
        InspectionRegistry(inspections or [KeyLineInspection()]),
        ParseCache(),
    )


def _issue_set(results):
    return {(i.file.relative_path, i.line, i.message) for i in results.issues}


class TestDispatch:
    def test_parallel_and_sequential_agree(self, make_project):
        root = make_project(YAML_FILES)
        sequential = _engine(parallel=False).analyze(root)
        parallel = _engine(parallel=True, max_threads=4).analyze(root)

        assert sequential.total_issues == 12
        assert _issue_set(sequential) == _issue_set(parallel)
        assert list(parallel.issues_by_file) == sorted(YAML_FILES)

    def test_progress_called_once_per_file(self, make_project):
        root = make_project(YAML_FILES)
        seen: list[str] = []
        _engine(max_threads=3).analyze(root, progress=seen.append)
        assert sorted(seen) == sorted(YAML_FILES)

    def test_statistics(self, make_project):
        root = make_project(YAML_FILES)
        engine = _engine(KeyLineInspection(), HintInspection(), min_severity=Severity.HINT)
        results = engine.analyze(root)

        stats = engine.statistics()
        assert stats is results.statistics
        assert stats.files_analyzed == 6
        assert stats.inspections_run == 12
        assert stats.inspection_failures == 0
        assert stats.duration_seconds >= 0

    def test_explicit_file_list(self, make_project):
        root = make_project(YAML_FILES)
        files = FileScanner().scan(root)[:2]
        results = _engine().analyze(root, files)
        assert results.statistics.files_analyzed == 2

    def test_missing_root(self, tmp_path):
        with pytest.raises(ScanError):
            _engine().analyze(tmp_path / "missing")

    def test_results_before_analyze(self):
        engine = _engine()
        with pytest.raises(AnalysisNotRunError):
            engine.get_results()
        with pytest.raises(AnalysisNotRunError):
            engine.statistics()


class TestFiltering:
    @pytest.mark.parametrize("min_severity", list(Severity))
    def test_nothing_below_min_severity(self, make_project, min_severity):
        root = make_project(YAML_FILES)
        engine = _engine(KeyLineInspection(), HintInspection(), min_severity=min_severity)
        for issue in engine.analyze(root).issues:
            assert issue.severity.at_least(min_severity)

    def test_severity_override(self, make_project):
        root = make_project({"a.yaml": "alpha: 1\n"})
        engine = _engine(inspections={"test.key-line": {"severity": "ERROR"}})
        issues = engine.analyze(root).issues
        assert [i.severity for i in issues] == [Severity.ERROR]

    def test_disabled_inspection(self, make_project):
        root = make_project({"a.yaml": "alpha: 1\n"})
        engine = _engine(inspections={"test.key-line": {"enabled": False}})
        results = engine.analyze(root)
        assert results.total_issues == 0
        assert results.statistics.inspections_run == 0

    def test_globally_disabled(self, make_project):
        root = make_project({"a.yaml": "alpha: 1\n"})
        results = _engine(enabled=False).analyze(root)
        assert results.total_issues == 0
        assert results.complete

    def test_selection_by_file_type(self):
        engine = InspectionEngine(
            InspectionConfig(min_severity=Severity.HINT),
            InspectionRegistry(default_inspections()),
        )
        assert [i.id for i in engine.inspections_for(FileType.JAVA)] == [
            "config.component-parameter-null",
            "security.xxe-external-entity",
        ]
        assert engine.inspections_for(None) == []


class TestDegradation:
    def test_failing_inspection_does_not_abort(self, make_project):
        root = make_project(YAML_FILES)
        results = _engine(KeyLineInspection(), BrokenInspection()).analyze(root)
        assert results.total_issues == 12
        assert results.statistics.inspection_failures == 6
        assert results.complete

    def test_truncated_pom_is_a_parse_failure(self, make_project):
        root = make_project({
            "pom.xml": "<project>\n  <version>0.1.0-SNAPSHOT</version>\n",
        })
        engine = InspectionEngine(
            InspectionConfig(min_severity=Severity.HINT),
            InspectionRegistry(default_inspections()),
        )
        results = engine.analyze(root)
        assert results.total_issues == 0
        assert results.statistics.parse_failures == 1
        assert results.complete

    def test_slow_inspection_times_out(self, make_project):
        root = make_project({"a.yaml": "alpha: 1\n"})
        blocking = BlockingInspection()
        engine = _engine(KeyLineInspection(), blocking, inspection_timeout=0.2, parallel=False)
        try:
            results = engine.analyze(root)
        finally:
            blocking.release.set()
        assert results.statistics.inspection_timeouts == 1
        assert [i.message for i in results.issues] == ["key alpha"]

    def test_timeout_from_environment(self, make_project, monkeypatch):
        monkeypatch.setenv("BRXM_INSPECT_TIMEOUT", "0.2")
        root = make_project({"a.yaml": "alpha: 1\n"})
        blocking = BlockingInspection()
        engine = _engine(blocking, parallel=False)
        try:
            results = engine.analyze(root)
        finally:
            blocking.release.set()
        assert results.statistics.inspection_timeouts == 1
        assert results.total_issues == 0


class TestCancellation:
    def test_cancel_from_progress(self, make_project):
        root = make_project(YAML_FILES)
        engine = _engine(parallel=False)

        def progress(path: str) -> None:
            engine.cancel()

        results = engine.analyze(root, progress=progress)
        assert not results.complete
        assert results.statistics.files_analyzed == 1
        assert results.total_issues == 2
        assert engine.get_results() is results

    def test_interrupt_keeps_partial_results(self, make_project):
        root = make_project(YAML_FILES)
        engine = _engine(max_threads=2)
        calls = []

        def progress(path: str) -> None:
            calls.append(path)
            if len(calls) == 2:
                raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            engine.analyze(root, progress=progress)

        partial = engine.get_results()
        assert not partial.complete
        assert engine.cancelled
        assert partial.statistics.files_analyzed == 2
        assert set(partial.issues_by_file) == set(calls)


class TestCacheReuse:
    def test_second_run_hits_the_cache(self, make_project):
        root = make_project(YAML_FILES)
        cache = ParseCache()
        registry = InspectionRegistry([KeyLineInspection()])
        first = InspectionEngine(InspectionConfig(), registry, cache).analyze(root)
        second = InspectionEngine(InspectionConfig(), registry, cache).analyze(root)

        assert first.statistics.cache_misses == 6
        assert second.statistics.cache_hits == 6
        assert second.statistics.cache_misses == 0
        assert _issue_set(first) == _issue_set(second)

    def test_changed_file_is_reparsed(self, make_project):
        root = make_project({"a.yaml": "alpha: 1\n"})
        cache = ParseCache()
        registry = InspectionRegistry([KeyLineInspection()])
        InspectionEngine(InspectionConfig(), registry, cache).analyze(root)
        (root / "a.yaml").write_text("alpha: 1\ngamma: 3\n")
        second = InspectionEngine(InspectionConfig(), registry, cache).analyze(root)

        assert second.statistics.cache_misses == 1
        assert second.total_issues == 2

    def test_file_saved_while_read_is_parsed_again(self, make_project, monkeypatch):
        root = make_project({"a.yaml": "alpha: 1\n"})
        read_text = SourceFile.read_text
        saved: list[str] = []

        def read_then_save(file: SourceFile) -> str:
            content = read_text(file)
            if file.name == "a.yaml" and not saved:
                saved.append(file.relative_path)
                (root / "a.yaml").write_text("alpha: 1\ngamma: 3\n")
            return content

        monkeypatch.setattr(SourceFile, "read_text", read_then_save)
        cache = ParseCache()
        registry = InspectionRegistry([KeyLineInspection()])
        first = InspectionEngine(InspectionConfig(), registry, cache).analyze(root)
        second = InspectionEngine(InspectionConfig(), registry, cache).analyze(root)

        assert saved == ["a.yaml"]
        assert [i.message for i in first.issues] == ["key alpha"]
        assert second.statistics.cache_misses == 1
        assert [i.message for i in second.issues] == ["key alpha", "key gamma"]

    def test_disabled_cache_is_not_consulted(self, make_project):
        root = make_project(YAML_FILES)
        cache = ParseCache()
        registry = InspectionRegistry([KeyLineInspection()])
        config = InspectionConfig(cache_enabled=False)
        InspectionEngine(config, registry, cache).analyze(root)
        second = InspectionEngine(config, registry, cache).analyze(root)

        assert len(cache) == 0
        assert second.statistics.cache_hits == 0
        assert second.statistics.cache_misses == 0
        assert second.total_issues == 12

    def test_warm_cache_matches_no_cache(self, make_project):
        root = make_project(MIXED_SITE)
        registry = InspectionRegistry(default_inspections())
        cache = ParseCache()
        cached = InspectionConfig(min_severity=Severity.HINT, cache_enabled=True)
        InspectionEngine(cached, registry, cache).analyze(root)
        warm = InspectionEngine(cached, registry, cache).analyze(root)
        uncached = InspectionEngine(
            InspectionConfig(min_severity=Severity.HINT, cache_enabled=False), registry
        ).analyze(root)

        def by_file(results):
            return {
                path: [(i.inspection_id, i.line, i.message) for i in batch]
                for path, batch in results.issues_by_file.items()
            }

        assert warm.statistics.cache_misses == 0
        assert _issue_set(warm) == _issue_set(uncached)
        assert by_file(warm) == by_file(uncached)
        assert sorted(by_file(warm)) == sorted(MIXED_SITE)

    def test_indexed_file_counts_two_lookups(self, make_project):
        root = make_project({"news.yaml": UUID_NODE})
        registry = InspectionRegistry(default_inspections())
        results = InspectionEngine(InspectionConfig(), registry, ParseCache()).analyze(root)

        # one miss in the index pass, one hit in the inspection pass
        assert results.statistics.cache_misses == 1
        assert results.statistics.cache_hits == 1
