"""Base model and enum for dashstate data.

Every model inherits from :class:`DashBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase keys coming from JavaScript
  backends and persisted blobs map automatically to snake_case fields.
* A ``model_validator(mode="before")`` that strips placeholder values
  (``None``, ``""``, ``"--"``, NaN) so the field default is used.
* Immutability (``frozen=True``); updates go through ``model_copy``.

Status enums inherit from :class:`DashEnum` which resolves any unmapped
value to ``UNKNOWN`` instead of raising ``ValueError``.
"""

from __future__ import annotations

import enum
import math
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Placeholder strings backends use for "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan", "null"})

# Threshold to distinguish epoch seconds from milliseconds.
_MS_THRESHOLD = 100_000_000_000


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: Any) -> datetime | None:
    """Convert a timestamp to an aware UTC datetime.

    Accepts datetimes, epoch seconds or milliseconds (int/float/numeric
    string) and ISO-8601 strings (a trailing ``Z`` is accepted). Returns
    ``None`` for anything that cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        ts = float(value)
        if ts <= 0:
            return None
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        try:
            return datetime.fromtimestamp(ts, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text or text in _SENTINELS:
            return None
        try:
            return parse_timestamp(float(text))
        except ValueError:
            pass
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parse_timestamp(parsed)
    return None


Timestamp = Annotated[datetime | None, BeforeValidator(parse_timestamp)]
"""Annotated type that leniently coerces epoch numbers and ISO strings to UTC datetimes."""


class DashEnum(enum.StrEnum):
    """Base for string status enums.

    Every subclass **must** define ``UNKNOWN``. Lookup is case-insensitive
    and whitespace-trimmed; values without a member resolve to ``UNKNOWN``.
    """

    @classmethod
    def _missing_(cls, value: object) -> DashEnum:
        if isinstance(value, str):
            wanted = value.strip().upper()
            for member in cls:
                if member.value == wanted:
                    return member
        unknown: DashEnum = cls["UNKNOWN"]
        return unknown


class DashBaseModel(BaseModel):
    """Base for all dashstate models.

    Handles:
    * camelCase ↔ snake_case via ``alias_generator=to_camel``
    * placeholder values (``""``, ``"--"``, NaN, ``None``) → dropped so the
      field default is used instead
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        """Strip placeholder values from *values*."""
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return DashBaseModel._clean_dict(values)

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
