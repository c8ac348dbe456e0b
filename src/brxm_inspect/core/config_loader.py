"""Load, validate and save YAML configuration files.

Keys use camelCase::

    enabled: true
    minSeverity: WARNING
    parallel: true
    maxThreads: 4
    cacheEnabled: true
    inspectionTimeout: 30
    includePaths: ["**/*.java"]
    excludePaths: ["**/target/**"]
    inspections:
      deployment.project-version:
        enabled: false
      config.component-parameter-null:
        severity: ERROR

Any key not listed above, a value of the wrong type or an unknown severity
name is a ``ConfigurationError``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from brxm_inspect.errors import ConfigurationError
from brxm_inspect.model import Severity

from .config import InspectionConfig, InspectionOverride

_logger = logging.getLogger(__name__)

# Looked up (in order) in the working directory when no path is given.
DEFAULT_CONFIG_FILENAMES = (".brxm-inspect.yaml", "brxm-inspect.yaml")


class InspectionOverrideDocument(BaseModel):
    """``inspections.<id>`` block."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(default=True)
    severity: Optional[str] = Field(default=None)

    @field_validator("severity")
    @classmethod
    def check_severity(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            Severity.parse(value)
        return value


class ConfigDocument(BaseModel):
    """On-disk shape of a configuration file."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    enabled: bool = Field(default=True)
    min_severity: str = Field(default="INFO", alias="minSeverity")
    parallel: bool = Field(default=True)
    max_threads: Optional[int] = Field(default=None, alias="maxThreads", ge=1)
    cache_enabled: bool = Field(default=True, alias="cacheEnabled")
    inspection_timeout: Optional[float] = Field(default=None, alias="inspectionTimeout", gt=0)
    include_paths: Optional[List[str]] = Field(default=None, alias="includePaths")
    exclude_paths: Optional[List[str]] = Field(default=None, alias="excludePaths")
    inspections: Dict[str, InspectionOverrideDocument] = Field(default_factory=dict)

    @field_validator("min_severity")
    @classmethod
    def check_min_severity(cls, value: str) -> str:
        Severity.parse(value)
        return value

    def to_config(self) -> InspectionConfig:
        changes: dict[str, Any] = {
            "enabled": self.enabled,
            "min_severity": Severity.parse(self.min_severity),
            "parallel": self.parallel,
            "cache_enabled": self.cache_enabled,
            "inspections": {
                inspection_id: InspectionOverride(
                    enabled=doc.enabled,
                    severity=Severity.parse(doc.severity) if doc.severity else None,
                )
                for inspection_id, doc in self.inspections.items()
            },
        }
        if self.max_threads is not None:
            changes["max_threads"] = self.max_threads
        if self.inspection_timeout is not None:
            changes["inspection_timeout"] = self.inspection_timeout
        if self.include_paths is not None:
            changes["include_paths"] = tuple(self.include_paths)
        if self.exclude_paths is not None:
            changes["exclude_paths"] = tuple(self.exclude_paths)
        return InspectionConfig(**changes)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{location}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


def parse_config(text: str, *, source: str = "<string>") -> InspectionConfig:
    """Parse YAML *text* into an ``InspectionConfig``."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"{source}: invalid YAML: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{source}: top level must be a mapping")
    try:
        document = ConfigDocument.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"{source}: {_format_validation_error(exc)}") from exc
    return document.to_config()


def load_config(path: Path) -> InspectionConfig | None:
    """Load *path*; ``None`` when the file does not exist."""
    path = Path(path)
    if not path.is_file():
        _logger.debug("No configuration file at %s", path)
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"{path}: cannot read configuration: {exc}") from exc
    config = parse_config(text, source=str(path))
    _logger.info("Loaded configuration from %s", path)
    return config


def find_config_file(cwd: Path) -> Path | None:
    for name in DEFAULT_CONFIG_FILENAMES:
        candidate = cwd / name
        if candidate.is_file():
            return candidate
    return None


def resolve_config(path: Path | str | None = None, cwd: Path | None = None) -> InspectionConfig:
    """Explicit *path* if given (must exist), else a default file in *cwd*, else defaults."""
    if path is not None:
        config = load_config(Path(path))
        if config is None:
            raise ConfigurationError(f"configuration file not found: {path}")
        return config
    found = find_config_file(Path(cwd) if cwd is not None else Path.cwd())
    if found is not None:
        config = load_config(found)
        if config is not None:
            return config
    return InspectionConfig.default()


def config_to_document(config: InspectionConfig) -> dict[str, Any]:
    """Plain-dict (camelCase) form of *config*, suitable for YAML output."""
    doc: dict[str, Any] = {
        "enabled": config.enabled,
        "minSeverity": config.min_severity.name,
        "parallel": config.parallel,
        "maxThreads": config.max_threads,
        "cacheEnabled": config.cache_enabled,
        "includePaths": list(config.include_paths),
        "excludePaths": list(config.exclude_paths),
    }
    if config.inspection_timeout is not None:
        doc["inspectionTimeout"] = config.inspection_timeout
    if config.inspections:
        inspections: dict[str, Any] = {}
        for inspection_id in sorted(config.inspections):
            override = config.inspections[inspection_id]
            entry: dict[str, Any] = {"enabled": override.enabled}
            if override.severity is not None:
                entry["severity"] = override.severity.name
            inspections[inspection_id] = entry
        doc["inspections"] = inspections
    return doc


def save_config(config: InspectionConfig, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = yaml.safe_dump(config_to_document(config), sort_keys=False, default_flow_style=False)
    path.write_text(text, encoding="utf-8")
    _logger.info("Wrote configuration to %s", path)
