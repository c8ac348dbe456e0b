"""File discovery: walk a project root and keep files matching the include globs."""

from __future__ import annotations

import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Iterable

from brxm_inspect.errors import ScanError
from brxm_inspect.model.source_file import SourceFile

from .config import InspectionConfig

_logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a ``/``-separated glob into a regex matched against relative paths.

    ``*`` and ``?`` never cross a ``/``; ``**/`` matches zero or more whole
    directories and a trailing ``**`` matches everything below.
    """
    out: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    out.append("(?:[^/]*/)*")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out))


def matches_any(relative_path: str, patterns: Iterable[str]) -> bool:
    return any(compile_glob(p).fullmatch(relative_path) for p in patterns)


def excludes_subtree(relative_dir: str, patterns: Iterable[str]) -> bool:
    """True if some pattern matches every path below *relative_dir*.

    Only ``**`` and ``<dir glob>/**`` qualify; a pattern such as ``src/*``
    matches direct children only, so the directory must still be walked.
    """
    for pattern in patterns:
        if pattern == "**":
            return True
        if pattern.endswith("/**") and compile_glob(pattern[:-3]).fullmatch(relative_dir):
            return True
    return False


class FileScanner:
    """Enumerates analyzable files under a project root.

    A file is kept when its root-relative path matches at least one include
    pattern and no exclude pattern (exclude wins).  Symlinked directories are
    followed once; a link back to an already visited directory is skipped.
    """

    def __init__(self, config: InspectionConfig | None = None) -> None:
        self.config = config or InspectionConfig.default()

    def is_candidate(self, relative_path: str) -> bool:
        if not matches_any(relative_path, self.config.include_paths):
            return False
        return not matches_any(relative_path, self.config.exclude_paths)

    def scan(self, root: Path) -> list[SourceFile]:
        """Return matching files sorted by relative path.

        Raises ``ScanError`` if *root* is missing or not a directory.
        Unreadable directories are logged and skipped.
        """
        root = Path(root)
        if not root.exists():
            raise ScanError(f"project root does not exist: {root}")
        if not root.is_dir():
            raise ScanError(f"project root is not a directory: {root}")
        root = root.resolve()

        def _on_error(err: OSError) -> None:
            _logger.warning("Skipping unreadable directory %s: %s", err.filename, err.strerror)

        visited: set[tuple[int, int]] = set()
        found: list[SourceFile] = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=True):
            try:
                st = os.stat(dirpath)
            except OSError:
                dirnames[:] = []
                continue
            key = (st.st_dev, st.st_ino)
            if key in visited:
                _logger.debug("Skipping already visited directory %s", dirpath)
                dirnames[:] = []
                continue
            visited.add(key)
            base = Path(dirpath).relative_to(root).as_posix()
            prefix = "" if base == "." else base + "/"
            dirnames[:] = sorted(
                d for d in dirnames
                if not excludes_subtree(f"{prefix}{d}", self.config.exclude_paths)
            )

            for filename in sorted(filenames):
                full = Path(dirpath) / filename
                relative = full.relative_to(root).as_posix()
                if not self.is_candidate(relative):
                    continue
                try:
                    if not full.is_file():
                        continue
                    st_file = full.stat()
                except OSError as exc:
                    _logger.warning("Skipping unreadable file %s: %s", full, exc)
                    continue
                found.append(
                    SourceFile(
                        path=full,
                        relative_path=relative,
                        size=st_file.st_size,
                        mtime_ns=st_file.st_mtime_ns,
                    )
                )

        found.sort(key=lambda f: f.relative_path)
        _logger.info("Found %d file(s) to analyze under %s", len(found), root)
        return found
