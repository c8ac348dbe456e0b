"""CLI entry-point for brxm_inspect.

Usage:
    python -m brxm_inspect analyze <dir> [-c FILE] [-o DIR] [-i IDS] [-e GLOB ...]
                                         [--severity S] [-t N] [--no-cache] [--json] [--ci] [-v]
    python -m brxm_inspect list-inspections [--category C] [--json]
    python -m brxm_inspect config show [-c FILE]
    python -m brxm_inspect config validate [-c FILE]
    python -m brxm_inspect config init [-c FILE] [--force]
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from brxm_inspect import __version__
from brxm_inspect.api import analyze_project, list_inspections, write_json_report
from brxm_inspect.core.config import InspectionConfig
from brxm_inspect.core.config_loader import (
    DEFAULT_CONFIG_FILENAMES,
    config_to_document,
    resolve_config,
    save_config,
)
from brxm_inspect.core.registry import InspectionRegistry
from brxm_inspect.errors import ConfigurationError, ScanError
from brxm_inspect.model import InspectionCategory, Severity
from brxm_inspect.model.results import InspectionResults
from brxm_inspect.utils.exit_codes import ExitCode
from brxm_inspect.utils.json_norm import stable_json_dump


def _split_csv(values: list[str] | None) -> list[str]:
    """Accept both ``-i a,b`` and ``-i a -i b``."""
    out: list[str] = []
    for value in values or []:
        out.extend(part.strip() for part in value.split(",") if part.strip())
    return out


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="brxm-inspect",
        description="Static analysis for Bloomreach Experience Manager projects.",
    )
    p.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    sub = p.add_subparsers(dest="command")

    # ── analyze ─────────────────────────────────────────────────────
    an_p = sub.add_parser("analyze", help="Analyze a project directory.")
    an_p.add_argument("project_dir", type=Path, help="Project directory to analyze.")
    an_p.add_argument(
        "-c", "--config",
        dest="config_file",
        type=Path,
        default=None,
        help="Configuration file (YAML). Default: .brxm-inspect.yaml in the working directory.",
    )
    an_p.add_argument(
        "-o", "--output",
        dest="output_dir",
        type=Path,
        default=None,
        help="Write <project>-inspection-report.json into this directory.",
    )
    an_p.add_argument(
        "-i", "--inspection",
        dest="inspections",
        action="append",
        default=None,
        help="Run only these inspection ids (comma-separated, repeatable).",
    )
    an_p.add_argument(
        "-e", "--exclude",
        dest="excludes",
        action="append",
        default=None,
        help="Exclude glob pattern (repeatable); replaces the configured excludes.",
    )
    an_p.add_argument(
        "--severity",
        dest="min_severity",
        default=None,
        help="Minimum severity: ERROR, WARNING, INFO, HINT (default: from config, else INFO).",
    )
    an_p.add_argument(
        "-t", "--threads",
        dest="threads",
        type=int,
        default=None,
        help="Number of worker threads (1 = sequential; default: CPU count).",
    )
    an_p.add_argument(
        "--no-cache",
        dest="no_cache",
        action="store_true",
        default=False,
        help="Disable the parse cache.",
    )
    an_p.add_argument(
        "--json",
        dest="json_out",
        action="store_true",
        default=False,
        help="Print the full results JSON to stdout.",
    )
    an_p.add_argument(
        "--ci",
        "--deterministic",
        dest="ci_mode",
        action="store_true",
        default=False,
        help="Pin timestamps and timings so JSON output is byte-stable.",
    )
    an_p.add_argument(
        "-v", "--verbose",
        dest="verbose",
        action="store_true",
        default=False,
        help="Debug logging and a line per analyzed file.",
    )

    # ── list-inspections ────────────────────────────────────────────
    li_p = sub.add_parser("list-inspections", help="List the available inspections.")
    li_p.add_argument(
        "--category",
        default=None,
        help="Only this category (repository, configuration, performance, security, deployment).",
    )
    li_p.add_argument("--json", dest="json_out", action="store_true", default=False)

    # ── config ──────────────────────────────────────────────────────
    cfg_p = sub.add_parser("config", help="Show, validate or create a configuration file.")
    cfg_p.add_argument("action", choices=("show", "validate", "init"))
    cfg_p.add_argument(
        "-c", "--config",
        dest="config_file",
        type=Path,
        default=None,
        help=f"Configuration file (default: {DEFAULT_CONFIG_FILENAMES[0]}).",
    )
    cfg_p.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Overwrite an existing file on init.",
    )

    return p


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ── analyze ─────────────────────────────────────────────────────────


def _effective_config(args: argparse.Namespace) -> InspectionConfig:
    """Command-line options override the config file, which overrides defaults."""
    config = resolve_config(args.config_file)
    changes: dict = {}
    if args.min_severity is not None:
        changes["min_severity"] = Severity.parse(args.min_severity)
    if args.threads is not None:
        changes["max_threads"] = args.threads
        changes["parallel"] = args.threads > 1
    if args.no_cache:
        changes["cache_enabled"] = False
    excludes = _split_csv(args.excludes)
    if excludes:
        changes["exclude_paths"] = tuple(excludes)
    return config.with_overrides(**changes) if changes else config


def _print_human(results: InspectionResults, elapsed: float) -> None:
    """Summary on stderr."""
    err = sys.stderr
    print(f"\nAnalysis complete in {elapsed:.2f}s", file=err)
    if not results.complete:
        print("  (interrupted: results are partial)", file=err)
    print("\nSummary:", file=err)
    print(f"  Total issues: {results.total_issues}", file=err)
    print(f"  Errors:   {results.error_count}", file=err)
    print(f"  Warnings: {results.warning_count}", file=err)
    print(f"  Info:     {results.info_count}", file=err)
    print(f"  Hints:    {results.hint_count}", file=err)
    if results.statistics.parse_failures:
        print(f"  Files that failed to parse: {results.statistics.parse_failures}", file=err)

    by_category = results.issues_by_category
    if by_category:
        print("\nBy Category:", file=err)
        for category, issues in by_category.items():
            print(f"  {category.display_name}: {len(issues)}", file=err)

    if results.total_issues:
        print("", file=err)
        for path, issues in results.issues_by_file.items():
            for issue in issues:
                print(
                    f"  {path}:{issue.line}  [{issue.severity.name}] "
                    f"{issue.inspection_id}  {issue.message}",
                    file=err,
                )
    else:
        print("\nNo issues found.", file=err)


def _handle_analyze(args: argparse.Namespace) -> int:
    """Dispatch ``brxm-inspect analyze <dir>``."""
    _configure_logging(args.verbose)
    target: Path = args.project_dir
    if not target.is_dir():
        print(f"error: project directory does not exist: {target}", file=sys.stderr)
        return ExitCode.ERROR

    try:
        config = _effective_config(args)
        registry = InspectionRegistry.default()
        wanted = _split_csv(args.inspections)
        if wanted:
            registry = registry.subset(wanted)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return ExitCode.ERROR

    print(f"Analyzing project: {target.resolve()}", file=sys.stderr)

    def _progress(name: str) -> None:
        if args.verbose:
            print(f"  analyzed {name}", file=sys.stderr)

    started = time.monotonic()
    try:
        results = analyze_project(
            target,
            config=config,
            registry=registry,
            progress=_progress,
            ci_mode=args.ci_mode,
        )
    except (ScanError, ConfigurationError) as e:
        print(f"error: {e}", file=sys.stderr)
        return ExitCode.ERROR
    elapsed = time.monotonic() - started

    _print_human(results, elapsed)

    if args.output_dir is not None:
        path = write_json_report(
            results, args.output_dir, target.resolve().name, ci_mode=args.ci_mode
        )
        print(f"\nReport written to {path}", file=sys.stderr)

    if args.json_out:
        stable_json_dump(results.to_dict(), sys.stdout, ci_mode=args.ci_mode, indent=2)

    return ExitCode.VIOLATION if results.error_count else ExitCode.SUCCESS


# ── list-inspections ────────────────────────────────────────────────


def _handle_list(args: argparse.Namespace) -> int:
    """Dispatch ``brxm-inspect list-inspections``."""
    try:
        registry = InspectionRegistry.default()
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return ExitCode.ERROR

    entries = list_inspections(registry)
    if args.category:
        try:
            category = InspectionCategory(args.category.strip().lower())
        except ValueError:
            names = ", ".join(c.value for c in InspectionCategory)
            print(f"error: unknown category {args.category!r} (expected one of: {names})", file=sys.stderr)
            return ExitCode.ERROR
        entries = [e for e in entries if e["category"] == category.value]

    if args.json_out:
        stable_json_dump(entries, sys.stdout)
        return ExitCode.SUCCESS

    if not entries:
        print("No inspections found.")
        return ExitCode.SUCCESS
    print(f"Available inspections ({len(entries)}):\n")
    for category in InspectionCategory:
        group = [e for e in entries if e["category"] == category.value]
        if not group:
            continue
        print(f"{category.display_name}:")
        for e in group:
            print(f"  {e['id']:<40} {e['severity'].upper():<8} {e['name']}")
        print()
    return ExitCode.SUCCESS


# ── config ──────────────────────────────────────────────────────────


def _print_config(config: InspectionConfig, source: str) -> None:
    doc = config_to_document(config)
    print(f"Configuration ({source})")
    print(f"  Enabled:        {doc['enabled']}")
    print(f"  Min Severity:   {doc['minSeverity']}")
    print(f"  Parallel:       {doc['parallel']}")
    print(f"  Max Threads:    {doc['maxThreads']}")
    print(f"  Cache Enabled:  {doc['cacheEnabled']}")
    print(f"  Timeout (s):    {doc.get('inspectionTimeout', 'none')}")
    print("  Include Paths:")
    for pattern in doc["includePaths"]:
        print(f"    - {pattern}")
    print("  Exclude Paths:")
    for pattern in doc["excludePaths"]:
        print(f"    - {pattern}")
    overrides = doc.get("inspections", {})
    if overrides:
        print("  Inspections:")
        for inspection_id, entry in overrides.items():
            severity = entry.get("severity", "default")
            print(f"    {inspection_id}: enabled={entry['enabled']} severity={severity}")


def _handle_config(args: argparse.Namespace) -> int:
    """Dispatch ``brxm-inspect config {show,validate,init}``."""
    if args.action == "init":
        path: Path = args.config_file or Path(DEFAULT_CONFIG_FILENAMES[0])
        if path.exists() and not args.force:
            print(f"error: {path} already exists (use --force to overwrite)", file=sys.stderr)
            return ExitCode.ERROR
        save_config(InspectionConfig.default(), path)
        print(f"Wrote default configuration to {path}")
        return ExitCode.SUCCESS

    try:
        config = resolve_config(args.config_file)
    except ConfigurationError as e:
        if args.action == "validate":
            print(f"FAIL: {e}", file=sys.stderr)
            return ExitCode.VIOLATION
        print(f"error: {e}", file=sys.stderr)
        return ExitCode.ERROR

    source = str(args.config_file) if args.config_file else "defaults / working directory"
    if args.action == "validate":
        print(f"OK: {source}")
        return ExitCode.SUCCESS
    _print_config(config, source)
    return ExitCode.SUCCESS


def main(argv: list[str] | None = None) -> int:
    """Entry-point: returns an exit code (0 = clean, 1 = ERROR issues found, 2 = error)."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "analyze":
        return _handle_analyze(args)
    if args.command == "list-inspections":
        return _handle_list(args)
    if args.command == "config":
        return _handle_config(args)

    parser.print_help(sys.stderr)
    return ExitCode.ERROR


if __name__ == "__main__":
    raise SystemExit(main())
