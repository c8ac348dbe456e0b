"""Tests for the Java / XML / YAML parser adapters."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
import yaml

from brxm_inspect.model import FileType
from brxm_inspect.parsers import EMPTY_CONTENT_MESSAGE, adapter_for


@pytest.mark.parametrize("file_type", list(FileType))
@pytest.mark.parametrize("content", ["", "   \n\t\n"])
def test_blank_content_is_a_failure(file_type, content):
    result = adapter_for(file_type).parse(content)
    assert not result.ok
    assert result.errors[0].message == EMPTY_CONTENT_MESSAGE


def test_no_adapter_for_unknown_type():
    assert adapter_for(None) is None


def test_adapters_are_shared():
    assert adapter_for(FileType.XML) is adapter_for(FileType.XML)


class TestXmlParser:
    def test_parses_document(self):
        result = adapter_for(FileType.XML).parse("<project><version>1.0</version></project>")
        assert result.ok
        assert result.unit.kind is FileType.XML
        assert result.unit.ast.tag == "project"

    def test_doctype_is_accepted(self):
        content = (
            '<?xml version="1.0"?>\n'
            '<!DOCTYPE hippo-extension SYSTEM "http://example.com/extension.dtd">\n'
            "<extension/>\n"
        )
        assert adapter_for(FileType.XML).parse(content).ok

    def test_truncated_document(self):
        result = adapter_for(FileType.XML).parse("<project>\n  <version>1.0</version>\n")
        assert not result.ok
        assert result.errors[0].line >= 2


class TestYamlParser:
    def test_multi_document(self):
        result = adapter_for(FileType.YAML).parse("a: 1\n---\nb: 2\n")
        assert result.ok
        documents = result.unit.ast
        assert len(documents) == 2
        assert all(isinstance(d, yaml.MappingNode) for d in documents)

    def test_error_position(self):
        result = adapter_for(FileType.YAML).parse("a: 1\nb: [1, 2\n")
        assert not result.ok
        assert result.errors[0].line >= 2

    def test_tabs_are_an_error(self):
        assert not adapter_for(FileType.YAML).parse("a:\n\t- b\n").ok


class TestJavaParser:
    def test_parses_class(self):
        result = adapter_for(FileType.JAVA).parse("class A { void m() { int x = 1; } }")
        assert result.ok
        assert result.unit.kind is FileType.JAVA
        assert result.unit.ast.root_node.type == "program"

    def test_syntax_error_reports_location(self):
        result = adapter_for(FileType.JAVA).parse("class A {\n  void m( {\n}\n")
        assert not result.ok
        assert result.errors
        assert all(e.line >= 1 for e in result.errors)

    def test_concurrent_parses(self):
        adapter = adapter_for(FileType.JAVA)
        sources = [f"class C{n} {{ int f() {{ return {n}; }} }}" for n in range(16)]
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(adapter.parse, sources))
        assert all(r.ok for r in results)
