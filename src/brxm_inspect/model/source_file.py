"""SourceFile: an immutable per-scan snapshot of one file on disk."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from . import FileType


@dataclass(frozen=True, slots=True)
class Fingerprint:
    """Cheap content identity: path + byte size + modification time."""

    path: str
    size: int
    mtime_ns: int


@dataclass(frozen=True, slots=True)
class SourceFile:
    """A scanned file.  Identity is the absolute path.

    Size and mtime are captured at scan time; content is never preloaded and
    is read on demand through :meth:`read_text`.
    """

    path: Path
    relative_path: str = field(compare=False)
    size: int = field(compare=False, default=0)
    mtime_ns: int = field(compare=False, default=0)

    @classmethod
    def from_path(cls, path: Path, root: Path | None = None) -> "SourceFile":
        absolute = path if path.is_absolute() else path.resolve()
        st = absolute.stat()
        if root is not None:
            rel = os.path.relpath(absolute, root)
        else:
            rel = absolute.name
        return cls(
            path=absolute,
            relative_path=Path(rel).as_posix(),
            size=st.st_size,
            mtime_ns=st.st_mtime_ns,
        )

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def extension(self) -> str:
        """Extension without the dot, lower-cased (``""`` when absent)."""
        return self.path.suffix.lstrip(".").lower()

    @property
    def file_type(self) -> FileType | None:
        if not self.extension:
            return None
        return FileType.from_extension(self.extension)

    @property
    def snapshot_fingerprint(self) -> Fingerprint:
        """Fingerprint as recorded when the file was scanned."""
        return Fingerprint(str(self.path), self.size, self.mtime_ns)

    def fingerprint(self) -> Fingerprint:
        """Fingerprint of the file as it is on disk right now."""
        st = self.path.stat()
        return Fingerprint(str(self.path), st.st_size, st.st_mtime_ns)

    def exists(self) -> bool:
        return self.path.is_file()

    def read_text(self) -> str:
        return self.path.read_text(encoding="utf-8", errors="replace")
