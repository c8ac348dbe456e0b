"""Inspection run configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from brxm_inspect.errors import ConfigurationError
from brxm_inspect.model import Severity

if TYPE_CHECKING:
    from brxm_inspect.inspections.base import Inspection

DEFAULT_INCLUDE_PATHS: tuple[str, ...] = (
    "**/*.java",
    "**/*.xml",
    "**/*.yaml",
    "**/*.yml",
)

DEFAULT_EXCLUDE_PATHS: tuple[str, ...] = (
    "**/target/**",
    "**/build/**",
    "**/node_modules/**",
    "**/.git/**",
)

# Per-inspection, per-file time budget in seconds.  Override with the
# BRXM_INSPECT_TIMEOUT env var (0 = no limit).
TIMEOUT_ENV_VAR = "BRXM_INSPECT_TIMEOUT"
DEFAULT_INSPECTION_TIMEOUT = 60.0


def _default_threads() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class InspectionOverride:
    """Per-inspection switch and optional severity replacement."""

    enabled: bool = True
    severity: Severity | None = None

    def __post_init__(self) -> None:
        if self.severity is not None:
            object.__setattr__(self, "severity", Severity.parse(self.severity))


@dataclass(frozen=True)
class InspectionConfig:
    """Immutable run configuration, passed by reference into every component.

    Invalid values raise ``ConfigurationError`` on construction; nothing is
    silently replaced by a default.
    """

    enabled: bool = True
    min_severity: Severity = Severity.INFO
    parallel: bool = True
    max_threads: int = field(default_factory=_default_threads)
    cache_enabled: bool = True
    include_paths: tuple[str, ...] = DEFAULT_INCLUDE_PATHS
    exclude_paths: tuple[str, ...] = DEFAULT_EXCLUDE_PATHS
    inspections: Mapping[str, InspectionOverride] = field(
        default_factory=lambda: MappingProxyType({}),
    )
    inspection_timeout: float | None = DEFAULT_INSPECTION_TIMEOUT

    def __post_init__(self) -> None:
        object.__setattr__(self, "min_severity", Severity.parse(self.min_severity))
        if isinstance(self.max_threads, bool) or not isinstance(self.max_threads, int):
            raise ConfigurationError(f"maxThreads must be an integer, got {self.max_threads!r}")
        if self.max_threads < 1:
            raise ConfigurationError(f"maxThreads must be at least 1, got {self.max_threads}")
        if self.inspection_timeout is not None and self.inspection_timeout <= 0:
            raise ConfigurationError(
                f"inspectionTimeout must be positive, got {self.inspection_timeout}"
            )
        object.__setattr__(self, "include_paths", tuple(self.include_paths))
        object.__setattr__(self, "exclude_paths", tuple(self.exclude_paths))
        overrides: dict[str, InspectionOverride] = {}
        for inspection_id, override in dict(self.inspections).items():
            if isinstance(override, Mapping):
                override = InspectionOverride(**override)
            if not isinstance(override, InspectionOverride):
                raise ConfigurationError(
                    f"override for inspection {inspection_id!r} must be a mapping"
                )
            overrides[inspection_id] = override
        object.__setattr__(self, "inspections", MappingProxyType(overrides))

    @classmethod
    def default(cls) -> "InspectionConfig":
        return cls()

    def with_overrides(self, **changes: Any) -> "InspectionConfig":
        """Return a copy with *changes* applied (validated again)."""
        return replace(self, **changes)

    # ── per-inspection view ─────────────────────────────────────────

    def override_for(self, inspection_id: str) -> InspectionOverride | None:
        return self.inspections.get(inspection_id)

    def is_enabled(self, inspection: "Inspection") -> bool:
        if not self.enabled:
            return False
        override = self.override_for(inspection.id)
        return override.enabled if override is not None else True

    def effective_severity(self, inspection: "Inspection") -> Severity:
        override = self.override_for(inspection.id)
        if override is not None and override.severity is not None:
            return override.severity
        return inspection.severity

    def resolved_timeout(self) -> float | None:
        """Per-inspection timeout after applying ``BRXM_INSPECT_TIMEOUT``.

        The environment variable wins over the configured value; ``0`` (from
        either source) means no limit.
        """
        raw = os.environ.get(TIMEOUT_ENV_VAR, "").strip()
        if raw:
            try:
                timeout = float(raw)
            except ValueError:
                raise ConfigurationError(
                    f"{TIMEOUT_ENV_VAR} must be a number of seconds, got {raw!r}"
                ) from None
            if timeout < 0:
                raise ConfigurationError(f"{TIMEOUT_ENV_VAR} must not be negative, got {raw!r}")
            return timeout or None
        return self.inspection_timeout or None
