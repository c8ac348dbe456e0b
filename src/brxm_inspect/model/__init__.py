"""Enums shared across the engine, parsers and inspections."""

from __future__ import annotations

from enum import Enum

from brxm_inspect.errors import ConfigurationError


class Severity(str, Enum):
    """Issue severity.  Ranked ERROR > WARNING > INFO > HINT."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, other: "Severity") -> bool:
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: "str | Severity") -> "Severity":
        """Accept ``ERROR`` / ``error`` / ``Severity.ERROR``."""
        if isinstance(value, Severity):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        names = ", ".join(s.name for s in cls)
        raise ConfigurationError(f"invalid severity {value!r} (expected one of: {names})")

    @classmethod
    def ordered(cls) -> list["Severity"]:
        """Most severe first."""
        return sorted(cls, key=lambda s: s.rank, reverse=True)


_SEVERITY_RANK = {
    Severity.ERROR: 3,
    Severity.WARNING: 2,
    Severity.INFO: 1,
    Severity.HINT: 0,
}


class InspectionCategory(str, Enum):
    """Inspection categories, in display order."""

    REPOSITORY = "repository"
    CONFIGURATION = "configuration"
    PERFORMANCE = "performance"
    SECURITY = "security"
    DEPLOYMENT = "deployment"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class FileType(str, Enum):
    """File types with a parser adapter."""

    JAVA = "java"
    XML = "xml"
    YAML = "yaml"

    @classmethod
    def from_extension(cls, extension: str) -> "FileType | None":
        return _EXTENSIONS.get(extension.lower().lstrip("."))


_EXTENSIONS = {
    "java": FileType.JAVA,
    "xml": FileType.XML,
    "yaml": FileType.YAML,
    "yml": FileType.YAML,
}
