"""Normalization helpers.

Centralizes defensive parsing of loosely-typed backend payloads and
persisted blobs.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool) or value == "" or value == "--":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def first_present(data: Mapping[str, Any], *keys: str) -> Any:
    """Return the first value under *keys* that is not ``None`` or empty."""
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def as_mapping(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def string_list(value: Any) -> list[str]:
    """Coerce a list-like value into a list of non-empty strings."""
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, (list, tuple, set, frozenset)):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]

