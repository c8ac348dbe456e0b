"""XML parser factories created without XXE protection."""

from __future__ import annotations

from tree_sitter import Node

from brxm_inspect.model import FileType, InspectionCategory, Severity
from brxm_inspect.model.issue import InspectionIssue, TextRange
from brxm_inspect.parsers.java_parser import node_text

from .base import Inspection, InspectionContext

# Checked in this order; the first one contained in the receiver wins.
XML_PARSER_FACTORIES = ("DocumentBuilderFactory", "XMLInputFactory", "SAXParserFactory")

# Any of these anywhere in the file counts as "protection configured".
XXE_PROTECTION_MARKERS = (
    "disallow-doctype-decl",
    "external-general-entities",
    "external-parameter-entities",
    "FEATURE_SECURE_PROCESSING",
    "ACCESS_EXTERNAL_DTD",
    "ACCESS_EXTERNAL_SCHEMA",
)

_FIXES = {
    "DocumentBuilderFactory": """\
DocumentBuilderFactory dbf = DocumentBuilderFactory.newInstance();
dbf.setFeature("http://apache.org/xml/features/disallow-doctype-decl", true);
dbf.setFeature("http://xml.org/sax/features/external-general-entities", false);
dbf.setFeature("http://xml.org/sax/features/external-parameter-entities", false);
dbf.setFeature(XMLConstants.FEATURE_SECURE_PROCESSING, true);
dbf.setXIncludeAware(false);
dbf.setExpandEntityReferences(false);""",
    "XMLInputFactory": """\
XMLInputFactory factory = XMLInputFactory.newInstance();
factory.setProperty(XMLConstants.ACCESS_EXTERNAL_DTD, "");
factory.setProperty(XMLConstants.ACCESS_EXTERNAL_SCHEMA, "");""",
    "SAXParserFactory": """\
SAXParserFactory spf = SAXParserFactory.newInstance();
spf.setFeature("http://apache.org/xml/features/disallow-doctype-decl", true);
spf.setFeature("http://xml.org/sax/features/external-general-entities", false);
spf.setFeature("http://xml.org/sax/features/external-parameter-entities", false);
spf.setFeature(XMLConstants.FEATURE_SECURE_PROCESSING, true);""",
}


def is_test_source(relative_path: str) -> bool:
    path = "/" + relative_path.lower().replace("\\", "/")
    return "/test/" in path or path.endswith("test.java") or path.endswith("test.kt")


def _factory_type(call: Node) -> str | None:
    if node_text(call.child_by_field_name("name")) != "newInstance":
        return None
    receiver = call.child_by_field_name("object")
    if receiver is None:
        return None
    scope = node_text(receiver)
    for factory in XML_PARSER_FACTORIES:
        if factory in scope:
            return factory
    return None


class XmlExternalEntityInspection(Inspection):
    id = "security.xxe-external-entity"
    name = "XML External Entity (XXE) Vulnerability"
    description = (
        "Detects XML parser factories created without XXE (external entity) "
        "protection, which allows file disclosure, SSRF and entity-expansion "
        "denial of service."
    )
    category = InspectionCategory.SECURITY
    severity = Severity.ERROR
    applicable_file_types = frozenset({FileType.JAVA})

    def inspect(self, context: InspectionContext) -> list[InspectionIssue]:
        if is_test_source(context.file.relative_path):
            return []
        tree = context.unit(FileType.JAVA)
        if tree is None:
            return []
        if any(marker in context.content for marker in XXE_PROTECTION_MARKERS):
            return []

        issues: list[InspectionIssue] = []
        stack: list[Node] = [tree.root_node]
        while stack:
            node = stack.pop()
            stack.extend(reversed(node.children))
            if node.type != "variable_declarator":
                continue
            value = node.child_by_field_name("value")
            if value is None or value.type != "method_invocation":
                continue
            factory = _factory_type(value)
            if factory is None:
                continue
            line = value.start_point[0] + 1
            issues.append(
                self._issue(
                    context,
                    f"{factory} created without XXE protection",
                    range=TextRange.whole_line(line),
                    description=(
                        f"{factory} is created without disabling DOCTYPE declarations "
                        f"or external entities.  Configure it before use:\n\n{_FIXES[factory]}\n"
                    ),
                    parserType=factory,
                    line=line,
                )
            )
        return issues
