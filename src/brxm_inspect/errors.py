"""Error taxonomy shared by the scanner, config layer and engine.

Only ``ScanError`` and ``ConfigurationError`` abort a run.  Everything else
(malformed sources, broken or slow inspections) degrades to fewer issues.
"""

from __future__ import annotations


class InspectError(Exception):
    """Base class for all brxm-inspect errors."""


class ScanError(InspectError):
    """Project root is missing, unreadable or not a directory."""


class ConfigurationError(InspectError, ValueError):
    """An option was explicitly set to an invalid value."""


class AnalysisNotRunError(InspectError, RuntimeError):
    """Results were requested before an analysis was finalized."""


class InspectionTimeout(InspectError, TimeoutError):
    """A single inspection exceeded its time budget on one file."""
