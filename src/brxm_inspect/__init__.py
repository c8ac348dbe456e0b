"""brxm_inspect: rule-based static analysis for Bloomreach Experience Manager projects."""

__all__ = [
    "__version__",
    "analyze_project",
    "write_json_report",
    "list_inspections",
    "validate_instance",
    "InspectionConfig",
    "InspectionEngine",
    "InspectionRegistry",
    "InspectionResults",
    "ParseCache",
    "Severity",
    "InspectionCategory",
    "FileType",
]
__version__ = "0.1.0"

from brxm_inspect.api import (  # noqa: E402, F401
    analyze_project,
    list_inspections,
    write_json_report,
)
from brxm_inspect.contracts.load import validate_instance  # noqa: E402, F401
from brxm_inspect.core.cache import ParseCache  # noqa: E402, F401
from brxm_inspect.core.config import InspectionConfig  # noqa: E402, F401
from brxm_inspect.core.engine import InspectionEngine  # noqa: E402, F401
from brxm_inspect.core.registry import InspectionRegistry  # noqa: E402, F401
from brxm_inspect.model import FileType, InspectionCategory, Severity  # noqa: E402, F401
from brxm_inspect.model.results import InspectionResults  # noqa: E402, F401
