from __future__ import annotations

import json
from functools import lru_cache
from importlib.resources import files
from typing import Any

import jsonschema

from textchunk_contracts import schemas as contracts_schemas

WINDOW_REQUEST_SCHEMA = "window_request.json"
WINDOW_REPLY_SCHEMA = "window_reply.json"


class ValidationError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@lru_cache(maxsize=None)
def _load_schema_text(name: str) -> str:
    return (files(contracts_schemas) / name).read_text(encoding="utf-8")


def load_schema(name: str) -> dict[str, Any]:
    """Return a fresh copy of a bundled JSON Schema so callers may mutate it."""
    return json.loads(_load_schema_text(name))


def validate_json(instance: Any, schema: dict[str, Any]) -> None:
    try:
        jsonschema.validate(instance=instance, schema=schema)
    except jsonschema.ValidationError as exc:
        raise ValidationError(exc.message) from exc


def assert_window_bounds(next_start_index: int, next_end_index: int, max_index: int) -> None:
    """
    Index invariants for the window requested by a non-finishing reply.
    Out-of-range values are rejected, never clamped.
    """
    if next_start_index < 0:
        raise ValidationError(f"next start index {next_start_index} is negative")
    if next_end_index > max_index:
        raise ValidationError(
            f"next end index {next_end_index} received from output is larger than max index {max_index}"
        )
    if next_start_index > next_end_index:
        raise ValidationError(
            f"next start index {next_start_index} is larger than next end index {next_end_index}"
        )
