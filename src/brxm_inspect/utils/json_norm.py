"""Canonical JSON output for reports and ``--json``.

Keys are sorted and every document ends with a newline, so two runs over the
same project (in ci mode) produce byte-identical files.  Values that json
cannot encode are normalised first:

  - objects with ``to_dict()`` (issues, results, ranges) -> that dict
  - other dataclasses -> ``dataclasses.asdict``
  - ``Enum`` members -> their value; ``Path`` -> POSIX string
  - sets and tuples -> lists
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import PurePath
from typing import IO, Any, Mapping

# Digits kept for floats (durations) in ci mode.
CI_FLOAT_DIGITS = 4


def _to_builtin(obj: Any) -> Any:
    if isinstance(obj, Enum):
        obj = obj.value
    if obj is None or isinstance(obj, (str, int, float)):
        return obj
    if isinstance(obj, PurePath):
        return obj.as_posix()
    if callable(getattr(obj, "to_dict", None)):
        return _to_builtin(obj.to_dict())
    if is_dataclass(obj) and not isinstance(obj, type):
        return _to_builtin(asdict(obj))
    if isinstance(obj, Mapping):
        return {str(_to_builtin(key)): _to_builtin(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [_to_builtin(item) for item in obj]
    return str(obj)


def _pin_floats(obj: Any) -> Any:
    """Round floats; NaN and infinities become strings."""
    if isinstance(obj, float):
        return round(obj, CI_FLOAT_DIGITS) if math.isfinite(obj) else str(obj)
    if isinstance(obj, dict):
        return {key: _pin_floats(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_pin_floats(item) for item in obj]
    return obj


def stable_json_dumps(obj: Any, *, ci_mode: bool = False, indent: int | None = 2) -> str:
    data = _to_builtin(obj)
    if ci_mode:
        data = _pin_floats(data)
    return json.dumps(data, indent=indent, sort_keys=True, ensure_ascii=False) + "\n"


def stable_json_dump(obj: Any, fp: IO[str], *, ci_mode: bool = False, indent: int | None = 2) -> None:
    fp.write(stable_json_dumps(obj, ci_mode=ci_mode, indent=indent))
