"""Shared fixtures: throwaway projects and single-file inspection contexts."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Callable

import pytest

from brxm_inspect.core.cache import ParseCache
from brxm_inspect.core.config import InspectionConfig
from brxm_inspect.core.index import ProjectIndex
from brxm_inspect.inspections.base import InspectionContext
from brxm_inspect.model.source_file import SourceFile
from brxm_inspect.parsers import adapter_for


@pytest.fixture(autouse=True)
def _no_timeout_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BRXM_INSPECT_TIMEOUT", raising=False)


def write_project(root: Path, files: dict[str, str]) -> Path:
    """Write ``{relative path: source}`` under *root* (sources are dedented)."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return root


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    def _make(files: dict[str, str]) -> Path:
        return write_project(tmp_path, files)

    return _make


@pytest.fixture
def make_context(tmp_path: Path) -> Callable[..., InspectionContext]:
    """Build the context an inspection would see for one file."""

    def _make(
        rel: str,
        content: str,
        *,
        index: ProjectIndex | None = None,
        config: InspectionConfig | None = None,
    ) -> InspectionContext:
        write_project(tmp_path, {rel: content})
        file = SourceFile.from_path(tmp_path / rel, tmp_path)
        text = file.read_text()
        adapter = adapter_for(file.file_type)
        return InspectionContext(
            file=file,
            content=text,
            parse_result=adapter.parse(text) if adapter is not None else None,
            project_root=tmp_path,
            project_index=index if index is not None else ProjectIndex.empty(),
            config=config or InspectionConfig.default(),
            cache=ParseCache(),
        )

    return _make
