"""Java parser adapter backed by tree-sitter.

tree-sitter ``Parser`` objects are not thread-safe, so a fresh parser is built
for every call; the compiled ``Language`` is shared.
"""

from __future__ import annotations

import logging

import tree_sitter_java
from tree_sitter import Language, Node, Parser

from brxm_inspect.model import FileType

from . import ParseError, ParseFailure, ParsedUnit, ParseResult, ParseSuccess, empty_content_failure

_logger = logging.getLogger(__name__)

JAVA_LANGUAGE = Language(tree_sitter_java.language())

# Cap on the number of syntax errors reported per file.
_MAX_ERRORS = 20


def node_text(node: Node | None) -> str:
    """Source text covered by *node* (``""`` for None)."""
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _collect_errors(root: Node) -> list[ParseError]:
    errors: list[ParseError] = []
    stack = [root]
    while stack and len(errors) < _MAX_ERRORS:
        node = stack.pop()
        if node.is_missing:
            row, col = node.start_point
            errors.append(ParseError(row + 1, col + 1, f"Missing '{node.type}'"))
            continue
        if node.is_error:
            row, col = node.start_point
            snippet = node_text(node).splitlines()[0][:40] if node_text(node) else ""
            errors.append(ParseError(row + 1, col + 1, f"Syntax error near '{snippet}'"))
            continue
        if node.has_error:
            stack.extend(reversed(node.children))
    errors.sort(key=lambda e: (e.line, e.column))
    return errors


class JavaParser:
    """Parses Java sources into a tree-sitter syntax tree."""

    name = "java"
    file_type = FileType.JAVA

    def parse(self, content: str) -> ParseResult:
        if not content.strip():
            return empty_content_failure()
        try:
            tree = Parser(JAVA_LANGUAGE).parse(content.encode("utf-8"))
        except Exception as exc:  # backend failure, not a syntax problem
            _logger.debug("tree-sitter failed to parse Java source: %s", exc)
            return ParseFailure((ParseError(0, 0, f"Unexpected error: {exc}"),))

        if tree.root_node.has_error:
            errors = _collect_errors(tree.root_node)
            if not errors:
                errors = [ParseError(0, 0, "Java syntax error")]
            _logger.debug("Java source has %d syntax error(s)", len(errors))
            return ParseFailure(tuple(errors))
        return ParseSuccess(ParsedUnit(FileType.JAVA, tree))
