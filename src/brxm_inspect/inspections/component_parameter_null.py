"""HST component parameters read without a null check.

Component parameters come from repository configuration and are ``null``
whenever the parameter is not configured, misspelled or not yet published::

    String title = getParameter("title");
    result.setText(title.toUpperCase());     // flagged (WARNING)

    String title = getParameter("title");
    if (title != null) {                     // fine
        result.setText(title.toUpperCase());
    }

    result.setText(getParameter("title").toUpperCase());   // flagged (ERROR)

Null checks are recognised in ``if`` conditions by pattern, not by evaluating
the boolean expression: ``title != null``, ``null == title`` and the like
anywhere in the condition count, including inside ``&&`` / ``||`` chains.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from tree_sitter import Node

from brxm_inspect.model import FileType, InspectionCategory, Severity
from brxm_inspect.model.issue import InspectionIssue, QuickFix, TextRange
from brxm_inspect.parsers.java_parser import node_text

from .base import Inspection, InspectionContext

PARAMETER_METHODS = frozenset({
    "getParameter",
    "getPublicRequestParameter",
    "getComponentParameter",
})

_NULL_COMPARISON = re.compile(r"[!=]=\s*null\b|\bnull\s*[!=]=")

_DESCRIPTION = """\
Component parameters are read from repository configuration and are null when
the parameter is not configured, misspelled, or not yet published.  Check the
value before use:

    String value = getParameter("myParam");
    if (value != null) {
        result.setText(value.toUpperCase());
    }
"""

_INLINE_DESCRIPTION = """\
The parameter is read and dereferenced in the same expression, so there is no
variable to null-check.  Assign it to a variable first and check that variable.
"""


def _null_check_pattern(variable: str) -> re.Pattern[str]:
    name = re.escape(variable)
    return re.compile(
        rf"(?<![\w.]){name}\s*[!=]=\s*null\b|\bnull\s*[!=]=\s*{name}(?![\w.(])"
    )


def _node_range(node: Node) -> TextRange:
    (start_row, start_col), (end_row, end_col) = node.start_point, node.end_point
    return TextRange(start_row + 1, start_col + 1, end_row + 1, max(end_col, 1))


def _parameter_name(call: Node) -> str:
    arguments = call.child_by_field_name("arguments")
    if arguments is None or not arguments.named_children:
        return "unknown"
    return node_text(arguments.named_children[0]).strip('"')


def _assigned_variable(call: Node) -> str | None:
    """Name the call's value is stored into, if it is directly assigned."""
    parent = call.parent
    if parent is None:
        return None
    if parent.type == "variable_declarator":
        if parent.child_by_field_name("value") == call:
            return node_text(parent.child_by_field_name("name"))
        return None
    if parent.type == "assignment_expression":
        if parent.child_by_field_name("right") == call:
            return node_text(parent.child_by_field_name("left"))
    return None


@dataclass
class _ParameterAccess:
    variable: str
    parameter: str
    method: str
    call: Node
    checked: bool = False
    used: bool = False


class ComponentParameterNullInspection(Inspection):
    id = "config.component-parameter-null"
    name = "Component Parameter Null Check"
    description = (
        "Detects HST component parameters accessed without null checks. "
        "Component parameters should always be validated before use to prevent "
        "NullPointerException."
    )
    category = InspectionCategory.CONFIGURATION
    severity = Severity.WARNING
    applicable_file_types = frozenset({FileType.JAVA})

    def inspect(self, context: InspectionContext) -> list[InspectionIssue]:
        tree = context.unit(FileType.JAVA)
        if tree is None:
            return []

        issues: list[InspectionIssue] = []
        # One dict of tracked variables per enclosing method declaration.
        scopes: list[dict[str, _ParameterAccess]] = []

        stack: list[tuple[Node, bool]] = [(tree.root_node, False)]
        while stack:
            node, exiting = stack.pop()
            if not exiting:
                if node.type == "method_declaration":
                    scopes.append({})
                stack.append((node, True))
                stack.extend((child, False) for child in reversed(node.children))
                continue

            tracked = scopes[-1] if scopes else None
            if node.type == "method_invocation":
                self._on_call(context, node, tracked, issues)
            elif node.type == "field_access" and tracked:
                self._mark_used(node.child_by_field_name("object"), tracked)
            elif node.type == "if_statement" and tracked:
                condition = node_text(node.child_by_field_name("condition"))
                for access in tracked.values():
                    if not access.checked and _null_check_pattern(access.variable).search(condition):
                        access.checked = True
            elif node.type == "method_declaration":
                for access in scopes.pop().values():
                    if access.used and not access.checked:
                        issues.append(self._unchecked_issue(context, access))
        return issues

    def quick_fixes(self, issue: InspectionIssue) -> list[QuickFix]:
        return [QuickFix("Add null check", "Wraps parameter usage in null check")]

    # ── visitor steps ───────────────────────────────────────────────

    def _on_call(
        self,
        context: InspectionContext,
        call: Node,
        tracked: dict[str, _ParameterAccess] | None,
        issues: list[InspectionIssue],
    ) -> None:
        method = node_text(call.child_by_field_name("name"))
        if method in PARAMETER_METHODS:
            parameter = _parameter_name(call)
            variable = _assigned_variable(call)
            if variable is not None:
                if tracked is not None:
                    tracked[variable] = _ParameterAccess(variable, parameter, method, call)
            elif not self._inside_null_check(call, method, parameter):
                issues.append(self._inline_issue(context, call, method, parameter))

        if tracked:
            self._mark_used(call.child_by_field_name("object"), tracked)
            arguments = call.child_by_field_name("arguments")
            if arguments is not None:
                for argument in arguments.named_children:
                    self._mark_used(argument, tracked)

    @staticmethod
    def _mark_used(node: Node | None, tracked: dict[str, _ParameterAccess]) -> None:
        if node is None or node.type != "identifier":
            return
        access = tracked.get(node_text(node))
        if access is not None:
            access.used = True

    @staticmethod
    def _inside_null_check(call: Node, method: str, parameter: str) -> bool:
        """True if an enclosing ``if`` null-compares this very parameter call."""
        call_pattern = re.compile(
            rf"{re.escape(method)}\s*\(\s*\"{re.escape(parameter)}\"\s*\)"
        )
        current = call.parent
        while current is not None:
            if current.type == "if_statement":
                condition = node_text(current.child_by_field_name("condition"))
                if call_pattern.search(condition) and _NULL_COMPARISON.search(condition):
                    return True
            current = current.parent
        return False

    # ── issues ──────────────────────────────────────────────────────

    def _unchecked_issue(self, context: InspectionContext, access: _ParameterAccess) -> InspectionIssue:
        return self._issue(
            context,
            f"Parameter '{access.parameter}' used without null check",
            range=_node_range(access.call),
            description=_DESCRIPTION,
            variableName=access.variable,
            parameterName=access.parameter,
            methodName=access.method,
        )

    def _inline_issue(
        self,
        context: InspectionContext,
        call: Node,
        method: str,
        parameter: str,
    ) -> InspectionIssue:
        return self._issue(
            context,
            f"Parameter '{parameter}' used inline without null check",
            range=_node_range(call),
            description=_INLINE_DESCRIPTION,
            severity=Severity.ERROR,
            parameterName=parameter,
            methodName=method,
            inlineUsage=True,
        )
