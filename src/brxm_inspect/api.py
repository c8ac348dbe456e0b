"""
brxm_inspect.api
================

Programmatic entrypoints for running inspections without the CLI.

Goals:
  - No argparse / CLI dependencies
  - Deterministic mode support (ci_mode=True)
  - Stable, JSON-friendly outputs that match inspection_results.schema.json

Usage::

    from brxm_inspect.api import analyze_project, write_json_report

    results = analyze_project("path/to/project")
    write_json_report(results, Path("out"), "my-site")
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from brxm_inspect.contracts.load import RESULTS_SCHEMA, validate_instance
from brxm_inspect.core.cache import ParseCache
from brxm_inspect.core.config import InspectionConfig
from brxm_inspect.core.discover import FileScanner
from brxm_inspect.core.engine import InspectionEngine
from brxm_inspect.core.registry import InspectionRegistry
from brxm_inspect.errors import ScanError
from brxm_inspect.model.results import InspectionResults
from brxm_inspect.utils.json_norm import stable_json_dumps

_logger = logging.getLogger(__name__)

# Fixed timestamp for deterministic mode.
DETERMINISTIC_TIMESTAMP = "2000-01-01T00:00:00+00:00"


def _to_path(p: str | Path) -> Path:
    return p if isinstance(p, Path) else Path(p)


def make_deterministic(results: InspectionResults) -> InspectionResults:
    """Copy of *results* with run-dependent fields (timestamp, timing, cache counters) pinned."""
    stats = dataclasses.replace(
        results.statistics,
        duration_seconds=0.0,
        cache_hits=0,
        cache_misses=0,
    )
    return dataclasses.replace(results, created_at=DETERMINISTIC_TIMESTAMP, statistics=stats)


# ── analyze_project ─────────────────────────────────────────────────


def analyze_project(
    root: str | Path,
    *,
    config: Optional[InspectionConfig] = None,
    registry: Optional[InspectionRegistry] = None,
    cache: Optional[ParseCache] = None,
    progress: Optional[Callable[[str], None]] = None,
    ci_mode: bool = False,
) -> InspectionResults:
    """Scan *root* and run every enabled inspection over it.

    Parameters
    ----------
    root:
        Project directory.
    config:
        Run configuration; defaults to ``InspectionConfig.default()``.
    registry:
        Inspection catalog; defaults to the built-in inspections.
    cache:
        Parse cache to reuse across runs (e.g. in a long-lived process).
        Entries for files that are no longer scanned are pruned.
    progress:
        Called once per analyzed file with its project-relative path.
    ci_mode:
        If True, timestamps and timings are pinned so output is byte-stable.

    Raises
    ------
    ScanError
        If *root* does not exist or is not a directory.
    ConfigurationError
        If the configuration or registry is invalid.
    """
    root_p = _to_path(root)
    if not root_p.is_dir():
        raise ScanError(f"analyze_project: project root does not exist: {root_p}")
    root_p = root_p.resolve()
    config = config or InspectionConfig.default()

    files = FileScanner(config).scan(root_p)
    if cache is not None:
        cache.prune(str(f.path) for f in files)

    engine = InspectionEngine(config, registry=registry, cache=cache)
    results = engine.analyze(root_p, files, progress=progress)
    return make_deterministic(results) if ci_mode else results


# ── reports ─────────────────────────────────────────────────────────


def report_filename(project_name: str) -> str:
    safe = "".join(c if c.isalnum() or c in "-_." else "-" for c in project_name).strip("-")
    return f"{safe or 'project'}-inspection-report.json"


def write_json_report(
    results: InspectionResults,
    out_dir: str | Path,
    project_name: str,
    *,
    ci_mode: bool = False,
) -> Path:
    """Validate *results* against the schema and write ``<project>-inspection-report.json``."""
    out = _to_path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    payload: dict[str, Any] = results.to_dict()
    validate_instance(payload, RESULTS_SCHEMA)
    path = out / report_filename(project_name)
    path.write_text(stable_json_dumps(payload, ci_mode=ci_mode), encoding="utf-8")
    _logger.info("Wrote JSON report to %s", path)
    return path


def list_inspections(registry: Optional[InspectionRegistry] = None) -> list[dict[str, Any]]:
    """JSON-friendly catalog of the registered inspections, ordered by id."""
    registry = registry if registry is not None else InspectionRegistry.default()
    return [
        {
            "id": inspection.id,
            "name": inspection.name,
            "category": inspection.category.value,
            "severity": inspection.severity.value,
            "file_types": sorted(t.value for t in inspection.applicable_file_types),
            "description": inspection.description,
        }
        for inspection in registry.all()
    ]
