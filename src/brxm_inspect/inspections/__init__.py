"""Built-in inspections.

Each inspection is a stateless ``Inspection`` subclass; ``default_inspections``
returns one fresh instance of each for the registry.
"""

from __future__ import annotations

from .base import Inspection, InspectionContext
from .bootstrap_uuid import BootstrapUuidIndexer, DuplicateBootstrapUuidInspection
from .component_parameter_null import ComponentParameterNullInspection
from .project_version import ProjectVersionInspection
from .xml_external_entity import XmlExternalEntityInspection

__all__ = [
    "Inspection",
    "InspectionContext",
    "BootstrapUuidIndexer",
    "ComponentParameterNullInspection",
    "DuplicateBootstrapUuidInspection",
    "ProjectVersionInspection",
    "XmlExternalEntityInspection",
    "default_inspections",
]

BUILTIN_INSPECTIONS: tuple[type[Inspection], ...] = (
    ComponentParameterNullInspection,
    ProjectVersionInspection,
    XmlExternalEntityInspection,
    DuplicateBootstrapUuidInspection,
)


def default_inspections() -> list[Inspection]:
    return [cls() for cls in BUILTIN_INSPECTIONS]
