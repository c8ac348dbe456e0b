"""Project index: cross-file symbol table built before any inspection runs.

Entries are ``(namespace, key) -> location`` records contributed by
``Indexer`` objects.  The index is populated once, frozen, and from then on
is read concurrently by every worker without locking.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Protocol

from brxm_inspect.model import FileType
from brxm_inspect.model.source_file import SourceFile

if TYPE_CHECKING:
    from brxm_inspect.parsers import ParsedUnit

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, order=True)
class IndexLocation:
    path: str
    line: int
    column: int = 1


@dataclass(frozen=True, slots=True)
class IndexEntry:
    namespace: str
    key: str
    location: IndexLocation


class Indexer(Protocol):
    """Contributes entries for one file during the index pass."""

    id: str
    file_types: frozenset[FileType]

    def index(self, file: SourceFile, unit: "ParsedUnit", content: str) -> Iterable[IndexEntry]:
        ...


class ProjectIndex:
    """Append-only until :meth:`freeze`; lookup-only afterwards."""

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, list[IndexLocation]]] = {}
        self._frozen: dict[str, dict[str, tuple[IndexLocation, ...]]] = {}
        self._sorted_keys: dict[str, list[str]] = {}
        self._is_frozen = False
        self._size = 0

    @classmethod
    def build(cls, entries: Iterable[IndexEntry]) -> "ProjectIndex":
        index = cls()
        index.extend(entries)
        index.freeze()
        return index

    @classmethod
    def empty(cls) -> "ProjectIndex":
        return cls.build(())

    # ── population ──────────────────────────────────────────────────

    def add(self, entry: IndexEntry) -> None:
        if self._is_frozen:
            raise RuntimeError("project index is frozen")
        self._entries.setdefault(entry.namespace, {}).setdefault(entry.key, []).append(
            entry.location
        )
        self._size += 1

    def extend(self, entries: Iterable[IndexEntry]) -> None:
        for entry in entries:
            self.add(entry)

    def freeze(self) -> "ProjectIndex":
        if self._is_frozen:
            return self
        for namespace, keys in self._entries.items():
            self._frozen[namespace] = {
                key: tuple(sorted(set(locations))) for key, locations in keys.items()
            }
            self._sorted_keys[namespace] = sorted(keys)
        self._entries = {}
        self._is_frozen = True
        _logger.debug(
            "Project index frozen: %d entr(y/ies) in %d namespace(s)",
            self._size,
            len(self._frozen),
        )
        return self

    @property
    def is_frozen(self) -> bool:
        return self._is_frozen

    # ── queries ─────────────────────────────────────────────────────

    def _require_frozen(self) -> None:
        if not self._is_frozen:
            raise RuntimeError("project index must be frozen before it is queried")

    def lookup(self, namespace: str, key: str) -> tuple[IndexLocation, ...]:
        """All locations recorded for *key*, in path/line order."""
        self._require_frozen()
        return self._frozen.get(namespace, {}).get(key, ())

    def with_prefix(self, namespace: str, prefix: str) -> dict[str, tuple[IndexLocation, ...]]:
        """Every key in *namespace* starting with *prefix*, with its locations."""
        self._require_frozen()
        keys = self._sorted_keys.get(namespace, [])
        table = self._frozen.get(namespace, {})
        start = bisect.bisect_left(keys, prefix)
        found: dict[str, tuple[IndexLocation, ...]] = {}
        for key in keys[start:]:
            if not key.startswith(prefix):
                break
            found[key] = table[key]
        return found

    def keys(self, namespace: str) -> list[str]:
        self._require_frozen()
        return list(self._sorted_keys.get(namespace, []))

    def namespaces(self) -> list[str]:
        self._require_frozen()
        return sorted(self._frozen)

    def __len__(self) -> int:
        return self._size
