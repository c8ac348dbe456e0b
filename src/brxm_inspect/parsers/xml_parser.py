"""XML parser adapter (ElementTree).

DOCTYPE declarations are accepted; external entities and DTDs are never
fetched by the expat backend.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from brxm_inspect.model import FileType

from . import ParseError, ParseFailure, ParsedUnit, ParseResult, ParseSuccess, empty_content_failure

_logger = logging.getLogger(__name__)


def local_name(tag: str) -> str:
    """Strip a ``{namespace}`` prefix from an ElementTree tag or attribute name."""
    return tag.rsplit("}", 1)[-1] if tag.startswith("{") else tag


def child_elements(element: ET.Element, name: str | None = None) -> list[ET.Element]:
    """Direct element children, optionally filtered by local name."""
    children = [c for c in element if isinstance(c.tag, str)]
    if name is None:
        return children
    return [c for c in children if local_name(c.tag) == name]


def attribute(element: ET.Element, name: str) -> str | None:
    """Attribute value by local name, ignoring any namespace prefix."""
    for key, value in element.attrib.items():
        if local_name(key) == name:
            return value
    return None


class XmlParser:
    """Parses XML documents into an ElementTree root element."""

    name = "xml"
    file_type = FileType.XML

    def parse(self, content: str) -> ParseResult:
        if not content.strip():
            return empty_content_failure()
        try:
            root = ET.fromstring(content)
        except ET.ParseError as exc:
            line, column = getattr(exc, "position", (0, 0))
            _logger.debug("Failed to parse XML: %s", exc)
            return ParseFailure((ParseError(line, column + 1 if line else 0, str(exc)),))
        except (ValueError, LookupError) as exc:
            # e.g. an encoding declaration Python does not know
            _logger.debug("Unexpected error parsing XML: %s", exc)
            return ParseFailure((ParseError(0, 0, f"Unexpected error: {exc}"),))
        return ParseSuccess(ParsedUnit(FileType.XML, root))
