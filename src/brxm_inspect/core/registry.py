"""Inspection registry: the immutable catalog the engine dispatches from."""

from __future__ import annotations

import logging
from typing import Iterable

from brxm_inspect.errors import ConfigurationError
from brxm_inspect.inspections.base import Inspection
from brxm_inspect.model import FileType, InspectionCategory

_logger = logging.getLogger(__name__)


class InspectionRegistry:
    """Catalog of inspections, assembled once and read-only afterwards.

    Two inspections sharing an id is a ``ConfigurationError``.
    """

    def __init__(self, inspections: Iterable[Inspection] = ()) -> None:
        by_id: dict[str, Inspection] = {}
        for inspection in inspections:
            if not inspection.id:
                raise ConfigurationError(f"inspection {inspection!r} has no id")
            if inspection.id in by_id:
                raise ConfigurationError(
                    f"duplicate inspection id {inspection.id!r}: "
                    f"{type(by_id[inspection.id]).__name__} and {type(inspection).__name__}"
                )
            by_id[inspection.id] = inspection
        self._by_id = {key: by_id[key] for key in sorted(by_id)}
        _logger.debug("Registered %d inspection(s)", len(self._by_id))

    @classmethod
    def default(cls) -> "InspectionRegistry":
        """The built-in inspections."""
        from brxm_inspect.inspections import default_inspections

        return cls(default_inspections())

    # ── queries ─────────────────────────────────────────────────────

    def all(self) -> list[Inspection]:
        """All inspections, ordered by id."""
        return list(self._by_id.values())

    def by_id(self, inspection_id: str) -> Inspection | None:
        return self._by_id.get(inspection_id)

    def by_category(self, category: InspectionCategory) -> list[Inspection]:
        return [i for i in self._by_id.values() if i.category is category]

    def by_file_type(self, file_type: FileType) -> list[Inspection]:
        return [i for i in self._by_id.values() if i.applies_to(file_type)]

    def categories(self) -> dict[InspectionCategory, int]:
        """Inspection count per category, in declared category order (empty ones omitted)."""
        counts: dict[InspectionCategory, int] = {}
        for category in InspectionCategory:
            n = len(self.by_category(category))
            if n:
                counts[category] = n
        return counts

    def subset(self, ids: Iterable[str]) -> "InspectionRegistry":
        """A registry holding only *ids*; an unknown id is a ``ConfigurationError``."""
        wanted = list(dict.fromkeys(ids))
        unknown = [i for i in wanted if i not in self._by_id]
        if unknown:
            raise ConfigurationError(f"unknown inspection id(s): {', '.join(unknown)}")
        return InspectionRegistry(self._by_id[i] for i in wanted)

    def __contains__(self, inspection_id: object) -> bool:
        return inspection_id in self._by_id

    def __iter__(self):
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)
