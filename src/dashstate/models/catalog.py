"""Catalog node model cached by the state store."""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field, field_validator

from dashstate.models._base import DashBaseModel, Timestamp


class CatalogNode(DashBaseModel):
    """A loaded catalog entity (root or node detail).

    Unknown backend fields are preserved as extras so the UI can render
    them without this package knowing their schema.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    title: str = ""
    kind: str = "item"
    icon: str | None = None
    description: str | None = None
    tags: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    children: tuple[str, ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Timestamp = None
    updated_at: Timestamp = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        text = str(value).strip()
        if not text:
            raise ValueError("id must be non-empty")
        return text

    @field_validator("tags", "categories", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return tuple(str(v) for v in value if v is not None)
        return ()

    @field_validator("children", mode="before")
    @classmethod
    def _coerce_children(cls, value: Any) -> Any:
        # Children may arrive as nested node dicts; only their ids are kept.
        if not isinstance(value, (list, tuple)):
            return ()
        ids: list[str] = []
        for child in value:
            if isinstance(child, dict):
                child = child.get("id")
            if child is not None and str(child).strip():
                ids.append(str(child))
        return tuple(ids)
