"""Tests for the inspection registry."""

from __future__ import annotations

import pytest

from brxm_inspect.core.registry import InspectionRegistry
from brxm_inspect.errors import ConfigurationError
from brxm_inspect.inspections import (
    ComponentParameterNullInspection,
    ProjectVersionInspection,
    default_inspections,
)
from brxm_inspect.inspections.base import Inspection
from brxm_inspect.model import FileType, InspectionCategory, Severity


class _Named(Inspection):
    category = InspectionCategory.PERFORMANCE
    severity = Severity.INFO
    applicable_file_types = frozenset({FileType.YAML})

    def __init__(self, inspection_id: str) -> None:
        self.id = inspection_id

    def inspect(self, context):
        return []


def test_builtins_are_registered_in_id_order():
    registry = InspectionRegistry(default_inspections())
    ids = [i.id for i in registry.all()]
    assert ids == sorted(ids)
    assert len(registry) == 4
    assert "security.xxe-external-entity" in registry


def test_duplicate_id_is_rejected():
    with pytest.raises(ConfigurationError, match="duplicate inspection id"):
        InspectionRegistry([_Named("perf.same"), _Named("perf.same")])


def test_empty_id_is_rejected():
    with pytest.raises(ConfigurationError):
        InspectionRegistry([_Named("")])


def test_lookup_by_id():
    registry = InspectionRegistry(default_inspections())
    assert isinstance(registry.by_id("deployment.project-version"), ProjectVersionInspection)
    assert registry.by_id("nope") is None


def test_queries_by_category_and_file_type():
    registry = InspectionRegistry(default_inspections() + [_Named("perf.a")])
    assert [i.id for i in registry.by_category(InspectionCategory.PERFORMANCE)] == ["perf.a"]
    java = {i.id for i in registry.by_file_type(FileType.JAVA)}
    assert java == {"config.component-parameter-null", "security.xxe-external-entity"}
    assert list(registry.categories()) == [
        InspectionCategory.REPOSITORY,
        InspectionCategory.CONFIGURATION,
        InspectionCategory.PERFORMANCE,
        InspectionCategory.SECURITY,
        InspectionCategory.DEPLOYMENT,
    ]


def test_subset():
    registry = InspectionRegistry(default_inspections())
    sub = registry.subset(["config.component-parameter-null"])
    assert [type(i) for i in sub] == [ComponentParameterNullInspection]
    with pytest.raises(ConfigurationError, match="unknown inspection"):
        registry.subset(["missing.id"])


def test_default_registry_includes_builtins():
    registry = InspectionRegistry.default()
    assert len(registry) == len(default_inspections())
