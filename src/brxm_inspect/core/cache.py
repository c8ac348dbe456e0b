"""Parse cache: one ``ParseResult`` per (file, adapter), reused while the file is unchanged.

Concurrency model: a short-lived guard lock hands out one lock per key, and
the parse itself runs under that per-key lock only.  Two workers asking for
the same file wait for a single parse; workers on different files never
contend.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Iterable

from brxm_inspect.model.source_file import Fingerprint, SourceFile
from brxm_inspect.parsers import ParserAdapter, ParseResult

_logger = logging.getLogger(__name__)

CacheKey = tuple[str, str]


@dataclass(frozen=True, slots=True)
class CacheEntry:
    fingerprint: Fingerprint
    result: ParseResult
    inserted_at: float


@dataclass(frozen=True, slots=True)
class CacheStats:
    entries: int
    hits: int
    misses: int

    def to_dict(self) -> dict[str, int]:
        return {"entries": self.entries, "hits": self.hits, "misses": self.misses}


class KeyedLocks:
    """Hands out one ``threading.Lock`` per key."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[CacheKey, threading.Lock] = {}

    def get(self, key: CacheKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def discard(self, key: CacheKey) -> None:
        with self._guard:
            self._locks.pop(key, None)


class ParseCache:
    """Memoises parse results keyed by absolute path and adapter name.

    An entry is valid while the file's current fingerprint (path, size,
    mtime) equals the one stored with it; otherwise the file is parsed again
    and the entry replaced.  Failures are cached like successes.
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._locks = KeyedLocks()
        self._counter_lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    # ── lookup-or-compute ───────────────────────────────────────────

    def get_or_parse(
        self,
        file: SourceFile,
        adapter: ParserAdapter,
        content: str | None = None,
        fingerprint: Fingerprint | None = None,
    ) -> ParseResult:
        """Return the cached result for *file* or parse it with *adapter*.

        *content* may be passed when the caller has already read the file; it
        should then also pass the *fingerprint* it took before that read, so a
        save in between leaves the entry under the old fingerprint and the next
        lookup misses.
        """
        if not self.enabled:
            return self._parse(file, adapter, content)

        key: CacheKey = (str(file.path), adapter.name)
        with self._locks.get(key):
            try:
                current = fingerprint if fingerprint is not None else file.fingerprint()
            except OSError as exc:
                _logger.debug("Cannot stat %s, parsing without caching: %s", file.path, exc)
                self._count(hit=False)
                return self._parse(file, adapter, content)

            entry = self._entries.get(key)
            if entry is not None and entry.fingerprint == current:
                self._count(hit=True)
                _logger.debug("Parse cache hit: %s", file.relative_path)
                return entry.result

            self._count(hit=False)
            _logger.debug("Parse cache miss: %s", file.relative_path)
            result = self._parse(file, adapter, content)
            self._entries[key] = CacheEntry(current, result, time.time())
            return result

    def _parse(self, file: SourceFile, adapter: ParserAdapter, content: str | None) -> ParseResult:
        if content is None:
            content = file.read_text()
        return adapter.parse(content)

    def _count(self, *, hit: bool) -> None:
        with self._counter_lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    # ── maintenance ─────────────────────────────────────────────────

    def get(self, file: SourceFile, adapter_name: str) -> ParseResult | None:
        """Cached result regardless of freshness, or None."""
        entry = self._entries.get((str(file.path), adapter_name))
        return entry.result if entry is not None else None

    def prune(self, live_paths: Iterable[str]) -> int:
        """Drop entries whose path is not in *live_paths*; return how many went."""
        live = set(live_paths)
        stale = [key for key in list(self._entries) if key[0] not in live]
        for key in stale:
            with self._locks.get(key):
                self._entries.pop(key, None)
            self._locks.discard(key)
        if stale:
            _logger.debug("Pruned %d stale parse cache entr(y/ies)", len(stale))
        return len(stale)

    def clear(self) -> None:
        for key in list(self._entries):
            with self._locks.get(key):
                self._entries.pop(key, None)
        with self._counter_lock:
            self._hits = 0
            self._misses = 0

    @property
    def hits(self) -> int:
        return self._hits

    @property
    def misses(self) -> int:
        return self._misses

    def stats(self) -> CacheStats:
        with self._counter_lock:
            return CacheStats(entries=len(self._entries), hits=self._hits, misses=self._misses)

    def __len__(self) -> int:
        return len(self._entries)
