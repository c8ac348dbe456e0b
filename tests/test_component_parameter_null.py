"""Tests for the component parameter null-check inspection."""

from __future__ import annotations

import textwrap

import pytest

from brxm_inspect.inspections.component_parameter_null import ComponentParameterNullInspection
from brxm_inspect.model import Severity


def _component(body: str) -> str:
    """Wrap *body* in a component's doBeforeRender method."""
    indented = textwrap.indent(textwrap.dedent(body).strip("\n"), "        ")
    return (
        "package com.example;\n\n"
        "public class NewsComponent extends BaseHstComponent {\n"
        "    public void doBeforeRender(HstRequest request, HstResponse response) {\n"
        f"{indented}\n"
        "    }\n"
        "}\n"
    )


@pytest.fixture
def run(make_context):
    inspection = ComponentParameterNullInspection()

    def _run(source: str):
        context = make_context("src/main/java/com/example/NewsComponent.java", source)
        assert context.parsed, context.parse_result
        return inspection.inspect(context)

    return _run


class TestUncheckedVariables:
    """Parameters stored in a variable and dereferenced."""

    def test_parameter_used_without_null_check(self, run):
        issues = run(_component("""
            String title = getParameter("title");
            x.setText(title.toUpperCase());
        """))
        assert len(issues) == 1
        assert issues[0].severity is Severity.WARNING
        assert "without null check" in issues[0].message

    def test_null_check_wrapping_usage(self, run):
        issues = run(_component("""
            String title = getParameter("title");
            if (title != null) {
                x.setText(title.toUpperCase());
            }
        """))
        assert issues == []

    def test_reversed_null_check(self, run):
        issues = run(_component("""
            String title = getParameter("title");
            if (null != title) {
                request.setAttribute("title", title.toUpperCase());
            }
        """))
        assert issues == []

    def test_early_return_null_check(self, run):
        issues = run(_component("""
            String title = getParameter("title");
            if (title == null) {
                return;
            }
            request.setAttribute("title", title.toUpperCase());
        """))
        assert issues == []

    def test_null_check_inside_compound_condition(self, run):
        issues = run(_component("""
            String title = getParameter("title");
            if (enabled &&   title!=null) {
                request.setAttribute("title", title.trim());
            }
        """))
        assert issues == []

    def test_similar_variable_name_is_not_a_check(self, run):
        issues = run(_component("""
            String title = getParameter("title");
            if (subtitle != null) {
                request.setAttribute("title", title.trim());
            }
        """))
        assert len(issues) == 1

    def test_multiple_unchecked_parameters(self, run):
        issues = run(_component("""
            String title = getParameter("title");
            String limit = getParameter("limit");

            request.setAttribute("title", title.toUpperCase());
            request.setAttribute("limit", Integer.parseInt(limit));
        """))
        assert len(issues) == 2
        assert [i.metadata["parameterName"] for i in issues] == ["title", "limit"]

    def test_mixed_checked_and_unchecked(self, run):
        issues = run(_component("""
            String title = getParameter("title");
            if (title != null) {
                request.setAttribute("title", title);
            }

            String subtitle = getParameter("subtitle");
            request.setAttribute("subtitle", subtitle.toUpperCase());
        """))
        assert len(issues) == 1
        assert "subtitle" in issues[0].message

    def test_unused_parameter_not_flagged(self, run):
        issues = run(_component("""
            String title = getParameter("title");
            // title not used
        """))
        assert issues == []

    def test_parameter_passed_as_argument(self, run):
        issues = run(_component("""
            String category = getParameter("category");
            processCategory(category);
        """))
        assert len(issues) == 1

    def test_field_access_on_parameter(self, run):
        issues = run(_component("""
            String title = getParameter("title");
            int n = title.length;
        """))
        assert len(issues) == 1

    @pytest.mark.parametrize("method", ["getPublicRequestParameter", "getComponentParameter"])
    def test_other_parameter_methods(self, run, method):
        issues = run(_component(f"""
            String query = {method}("query");
            request.setAttribute("q", query.trim());
        """))
        assert len(issues) == 1
        assert issues[0].metadata["methodName"] == method

    def test_metadata(self, run):
        issues = run(_component("""
            String title = getParameter("myTitle");
            request.setAttribute("title", title.toUpperCase());
        """))
        assert len(issues) == 1
        assert issues[0].metadata == {
            "variableName": "title",
            "parameterName": "myTitle",
            "methodName": "getParameter",
        }
        # points at the getParameter call on line 5
        assert issues[0].range.start_line == 5

    def test_tracking_is_per_method(self, run):
        source = """\
package com.example;

public class NewsComponent extends BaseHstComponent {
    public void first() {
        String title = getParameter("title");
        if (title != null) {
            use(title);
        }
    }

    public void second() {
        String title = getParameter("title");
        use(title);
    }
}
"""
        issues = run(source)
        assert len(issues) == 1
        assert issues[0].range.start_line == 12


class TestInlineUsage:
    """Parameter calls dereferenced directly."""

    def test_inline_usage_is_error(self, run):
        issues = run(_component("""
            x.setText(getParameter("title").toUpperCase());
        """))
        assert len(issues) == 1
        assert issues[0].severity is Severity.ERROR
        assert issues[0].message == "Parameter 'title' used inline without null check"
        assert issues[0].metadata["inlineUsage"] is True

    def test_inline_inside_null_check_condition(self, run):
        issues = run(_component("""
            if (getParameter("title") != null) {
                x.setText(getParameter("title").trim());
            }
        """))
        assert issues == []

    def test_inline_with_reversed_null_check(self, run):
        issues = run(_component("""
            if (null != this.getParameter( "title" )) {
                x.setText(getParameter("title").trim());
            }
        """))
        assert issues == []

    def test_inline_check_must_name_the_same_parameter(self, run):
        issues = run(_component("""
            if (getParameter("other") != null) {
                x.setText(getParameter("title").trim());
            }
        """))
        assert len(issues) == 1
        assert issues[0].metadata["parameterName"] == "title"


class TestParseHandling:
    def test_unparseable_source_yields_nothing(self, make_context):
        context = make_context("Broken.java", "public class Broken { void m( { }")
        assert not context.parsed
        assert ComponentParameterNullInspection().inspect(context) == []

    def test_quick_fix_offered(self, run):
        inspection = ComponentParameterNullInspection()
        issues = run(_component("""
            String title = getParameter("title");
            x.setText(title.trim());
        """))
        fixes = inspection.quick_fixes(issues[0])
        assert [f.name for f in fixes] == ["Add null check"]
