"""Schema checks for the JSON documents brxm-inspect emits.

Usage::

    from brxm_inspect.contracts.load import validate_instance, validate_file

    validate_instance(results.to_dict())
    validate_file(Path("out/site-inspection-report.json"))
"""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema.exceptions import best_match

SCHEMA_DIR = "data/schemas"

RESULTS_SCHEMA = "inspection_results.schema.json"
RESULTS_SCHEMA_VERSION = "inspection_results_v1"


def _schema_path(name: str) -> Path:
    """Locate a bundled schema: next to the sources first, then as package data."""
    local = Path(__file__).resolve().parents[1] / SCHEMA_DIR / name
    if local.exists():
        return local

    with resources.as_file(resources.files("brxm_inspect") / SCHEMA_DIR / name) as p:
        if not p.exists():
            raise FileNotFoundError(f"schema not found: {name}")
        return p


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict[str, Any]:
    path = _schema_path(name)
    return json.loads(path.read_text(encoding="utf-8"))


@lru_cache(maxsize=None)
def _validator(name: str) -> jsonschema.Draft202012Validator:
    schema = load_schema(name)
    jsonschema.Draft202012Validator.check_schema(schema)
    return jsonschema.Draft202012Validator(schema)


def validate_instance(instance: Any, schema_name: str = RESULTS_SCHEMA) -> None:
    """Raise ``jsonschema.ValidationError`` (the most relevant one) if *instance* does not conform."""
    error = best_match(_validator(schema_name).iter_errors(instance))
    if error is not None:
        raise error


def validate_file(instance_path: Path, schema_name: str = RESULTS_SCHEMA) -> None:
    """Validate a report on disk; a wrong ``schema_version`` is reported before anything else."""
    instance = json.loads(Path(instance_path).read_text(encoding="utf-8"))

    if schema_name == RESULTS_SCHEMA:
        found = instance.get("schema_version") if isinstance(instance, dict) else None
        if found != RESULTS_SCHEMA_VERSION:
            raise ValueError(
                f"{instance_path}: expected schema_version={RESULTS_SCHEMA_VERSION!r}, got {found!r}"
            )

    validate_instance(instance, schema_name)
