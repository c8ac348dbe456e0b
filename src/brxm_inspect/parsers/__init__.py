"""Parser adapters turn file content into a ``ParseResult``.

Contract shared by every adapter:

* ``parse(content) -> ParseSuccess | ParseFailure``
* never raises for malformed input; malformed input is a ``ParseFailure``
* empty or whitespace-only content is always a ``ParseFailure``
* stateless and safe to call from several worker threads at once

The parsed unit is a tagged variant (``ParsedUnit.kind``) so inspections can
ask for the representation they understand and get ``None`` on a mismatch
instead of failing on a cast.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Union

from brxm_inspect.model import FileType


@dataclass(frozen=True, slots=True)
class ParseError:
    line: int
    column: int
    message: str


@dataclass(frozen=True, slots=True)
class ParsedUnit:
    """A parsed file: ``kind`` tags which AST flavour ``ast`` holds.

    * ``FileType.JAVA`` -> tree-sitter ``Tree``
    * ``FileType.XML``  -> ``xml.etree.ElementTree.Element`` (document root)
    * ``FileType.YAML`` -> ``tuple`` of PyYAML root ``Node`` objects, one per document
    """

    kind: FileType
    ast: Any


@dataclass(frozen=True, slots=True)
class ParseSuccess:
    unit: ParsedUnit
    ok = True


@dataclass(frozen=True, slots=True)
class ParseFailure:
    errors: tuple[ParseError, ...]
    ok = False


ParseResult = Union[ParseSuccess, ParseFailure]

EMPTY_CONTENT_MESSAGE = "File is empty or contains only whitespace"


def empty_content_failure() -> ParseFailure:
    return ParseFailure((ParseError(0, 0, EMPTY_CONTENT_MESSAGE),))


class ParserAdapter(Protocol):
    """Every adapter exposes a stable ``name``, its ``file_type`` and ``parse()``."""

    name: str
    file_type: FileType

    def parse(self, content: str) -> ParseResult:
        ...


# Adapters are created on first use so that importing the package does not
# pull in every parsing backend.
_ADAPTERS: dict[FileType, ParserAdapter] = {}


def adapter_for(file_type: FileType | None) -> ParserAdapter | None:
    """Return the shared adapter for *file_type*, or None if there is none."""
    if file_type is None:
        return None
    adapter = _ADAPTERS.get(file_type)
    if adapter is not None:
        return adapter
    if file_type is FileType.JAVA:
        from .java_parser import JavaParser
        adapter = JavaParser()
    elif file_type is FileType.XML:
        from .xml_parser import XmlParser
        adapter = XmlParser()
    elif file_type is FileType.YAML:
        from .yaml_parser import YamlParser
        adapter = YamlParser()
    else:
        return None
    # Two threads may race here; both build an equivalent stateless adapter.
    return _ADAPTERS.setdefault(file_type, adapter)
