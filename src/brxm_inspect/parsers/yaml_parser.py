"""YAML parser adapter.

Documents are composed (not constructed) so that every node keeps its source
marks for line-accurate reporting.
"""

from __future__ import annotations

import logging
from typing import Iterator

import yaml

from brxm_inspect.model import FileType

from . import ParseError, ParseFailure, ParsedUnit, ParseResult, ParseSuccess, empty_content_failure

_logger = logging.getLogger(__name__)


def iter_mapping_pairs(node: yaml.Node) -> Iterator[tuple[yaml.Node, yaml.Node]]:
    """Yield every (key, value) pair of every mapping below *node*, depth-first."""
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, yaml.MappingNode):
            for key, value in current.value:
                yield key, value
            stack.extend(reversed([v for _, v in current.value]))
        elif isinstance(current, yaml.SequenceNode):
            stack.extend(reversed(current.value))


class YamlParser:
    """Parses (multi-document) YAML into PyYAML node trees."""

    name = "yaml"
    file_type = FileType.YAML

    def parse(self, content: str) -> ParseResult:
        if not content.strip():
            return empty_content_failure()
        try:
            documents = tuple(
                node
                for node in yaml.compose_all(content, Loader=yaml.SafeLoader)
                if node is not None
            )
        except yaml.MarkedYAMLError as exc:
            mark = exc.problem_mark or exc.context_mark
            line = mark.line + 1 if mark else 0
            column = mark.column + 1 if mark else 0
            _logger.debug("Failed to parse YAML: %s", exc)
            return ParseFailure((ParseError(line, column, exc.problem or str(exc)),))
        except yaml.YAMLError as exc:
            _logger.debug("Failed to parse YAML: %s", exc)
            return ParseFailure((ParseError(0, 0, str(exc)),))
        return ParseSuccess(ParsedUnit(FileType.YAML, documents))
