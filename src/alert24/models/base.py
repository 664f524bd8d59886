"""Shared helpers and types for Alert24 models."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, TypeAlias
from uuid import uuid4

# Loosely typed JSON document: dicts, lists and scalars as produced by json.loads
JSONValue: TypeAlias = dict[str, Any] | list[Any] | str | int | float | bool | None


def generate_id(prefix: str) -> str:
    """Generate a unique ID with the given prefix.

    Examples:
        generate_id("step") -> "step_a1b2c3d4e5f6"
    """
    return f"{prefix}_{uuid4().hex[:12]}"


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_timestamp() -> str:
    """Current time as an ISO-8601 string with millisecond precision."""
    return utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def load_json(value: JSONValue) -> JSONValue:
    """Parse JSON text, passing already-parsed structures through.

    Destination configuration arrives either as JSON text (as stored by the
    route layer) or as parsed structures. Raises ValueError for bad text.
    """
    if isinstance(value, str):
        return json.loads(value)
    return value
