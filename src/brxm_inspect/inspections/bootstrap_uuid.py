"""Duplicate ``jcr:uuid`` values across repository bootstrap files.

Two bootstrap files declaring the same node UUID make the repository import
fail or silently replace one node with the other.  UUIDs are collected from:

* HCM YAML bootstrap files: any ``jcr:uuid: <value>`` mapping entry
* JCR system-view XML exports: ``<sv:property sv:name="jcr:uuid"><sv:value>``
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Iterator

import yaml

from brxm_inspect.core.index import IndexEntry, IndexLocation
from brxm_inspect.model import FileType, InspectionCategory, Severity
from brxm_inspect.model.issue import InspectionIssue, TextRange
from brxm_inspect.model.source_file import SourceFile
from brxm_inspect.parsers import ParsedUnit
from brxm_inspect.parsers.xml_parser import attribute, child_elements, local_name
from brxm_inspect.parsers.yaml_parser import iter_mapping_pairs

from .base import Inspection, InspectionContext

UUID_NAMESPACE = "uuid"
UUID_PROPERTY = "jcr:uuid"


def _line_of(content: str, needle: str, start: int = 0) -> tuple[int, int]:
    """(1-based line, offset) of *needle* at or after *start*; (1, start) if absent."""
    pos = content.find(needle, start)
    if pos < 0:
        return 1, start
    return content.count("\n", 0, pos) + 1, pos + len(needle)


def _yaml_uuids(documents: tuple[yaml.Node, ...]) -> Iterator[tuple[str, int, int]]:
    for document in documents:
        for key, value in iter_mapping_pairs(document):
            if not isinstance(key, yaml.ScalarNode) or key.value != UUID_PROPERTY:
                continue
            if isinstance(value, yaml.ScalarNode) and str(value.value).strip():
                mark = value.start_mark
                yield str(value.value).strip(), mark.line + 1, mark.column + 1


def _xml_uuids(root: ET.Element, content: str) -> Iterator[tuple[str, int, int]]:
    offset = 0
    for element in root.iter():
        if not isinstance(element.tag, str) or local_name(element.tag) != "property":
            continue
        if attribute(element, "name") != UUID_PROPERTY:
            continue
        for value in child_elements(element, "value"):
            uuid = (value.text or "").strip()
            if uuid:
                line, offset = _line_of(content, uuid, offset)
                yield uuid, line, 1


class BootstrapUuidIndexer:
    """Records every bootstrap ``jcr:uuid`` under the ``uuid`` namespace."""

    id = "bootstrap-uuid"
    file_types = frozenset({FileType.YAML, FileType.XML})

    def declarations(self, unit: ParsedUnit, content: str) -> list[tuple[str, int, int]]:
        if unit.kind is FileType.YAML:
            return list(_yaml_uuids(unit.ast))
        if unit.kind is FileType.XML:
            return list(_xml_uuids(unit.ast, content))
        return []

    def index(self, file: SourceFile, unit: ParsedUnit, content: str) -> list[IndexEntry]:
        return [
            IndexEntry(UUID_NAMESPACE, uuid, IndexLocation(file.relative_path, line, column))
            for uuid, line, column in self.declarations(unit, content)
        ]


class DuplicateBootstrapUuidInspection(Inspection):
    id = "repository.duplicate-bootstrap-uuid"
    name = "Duplicate Bootstrap UUID"
    description = (
        "Detects jcr:uuid values declared in more than one bootstrap file; "
        "the repository can hold only one node per UUID."
    )
    category = InspectionCategory.REPOSITORY
    severity = Severity.ERROR
    applicable_file_types = frozenset({FileType.YAML, FileType.XML})
    indexers = (BootstrapUuidIndexer(),)

    def inspect(self, context: InspectionContext) -> list[InspectionIssue]:
        result = context.parse_result
        if result is None or not result.ok:
            return []
        indexer = self.indexers[0]
        own_path = context.file.relative_path

        issues: list[InspectionIssue] = []
        for uuid, line, column in indexer.declarations(result.unit, context.content):
            others = sorted({
                location.path
                for location in context.project_index.lookup(UUID_NAMESPACE, uuid)
                if location.path != own_path
            })
            if not others:
                continue
            issues.append(
                self._issue(
                    context,
                    f"UUID '{uuid}' is also declared in {len(others)} other file(s)",
                    range=TextRange(line, column, line, column + len(uuid)),
                    uuid=uuid,
                    conflictingFiles=others,
                )
            )
        return issues
