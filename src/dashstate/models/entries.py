"""Favorite and recently-viewed entry models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from dashstate.models._base import DashBaseModel, utcnow


def _require_id(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("id must be a non-empty string")
    return value.strip()


class FavoriteEntry(DashBaseModel):
    id: str
    title: str = ""
    kind: str = "item"
    added_at: datetime = Field(default_factory=utcnow)
    icon: str | None = None
    description: str | None = None
    tags: tuple[str, ...] | None = None
    category: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _check_id(cls, value: Any) -> str:
        return _require_id(value)


class HistoryEntry(DashBaseModel):
    id: str
    title: str = ""
    kind: str = "item"
    viewed_at: datetime = Field(default_factory=utcnow)
    icon: str | None = None
    action: str = "view"

    @field_validator("id", mode="before")
    @classmethod
    def _check_id(cls, value: Any) -> str:
        return _require_id(value)
