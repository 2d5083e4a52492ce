"""Search models: results, filters and sort criteria."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from dashstate.models._base import DashBaseModel, DashEnum, Timestamp


class SortField(DashEnum):
    UNKNOWN = "UNKNOWN"
    RELEVANCE = "RELEVANCE"
    DATE = "DATE"
    TITLE = "TITLE"


class SortDirection(DashEnum):
    UNKNOWN = "UNKNOWN"
    ASC = "ASC"
    DESC = "DESC"


class SortCriteria(DashBaseModel):
    """Sort order applied by the ranking pipeline."""

    field: SortField = SortField.RELEVANCE
    direction: SortDirection = SortDirection.DESC


class DateRange(DashBaseModel):
    """Inclusive ``from``/``to`` bounds on ``metadata.last_modified``."""

    start: Timestamp = Field(default=None, alias="from")
    end: Timestamp = Field(default=None, alias="to")

    def contains(self, value: datetime | None) -> bool:
        if value is None:
            return False
        if self.start is not None and value < self.start:
            return False
        return not (self.end is not None and value > self.end)


class SearchFilters(DashBaseModel):
    """Conjunction of optional predicates; absent fields impose no constraint."""

    kinds: tuple[str, ...] | None = None
    tags: tuple[str, ...] | None = None
    status: tuple[str, ...] | None = None
    date_range: DateRange | None = None
    min_score: float | None = None

    @field_validator("kinds", "tags", "status", mode="before")
    @classmethod
    def _coerce_sequence(cls, value: Any) -> Any:
        if isinstance(value, str):
            return (value,)
        return value

    @property
    def is_empty(self) -> bool:
        return (
            not self.kinds
            and not self.tags
            and not self.status
            and self.date_range is None
            and self.min_score is None
        )


class ResultMetadata(DashBaseModel):
    last_modified: Timestamp = None
    relevance: float | None = None
    access_level: str | None = None


class SearchResult(DashBaseModel):
    """A ranked search hit.

    ``score`` is never negative; ``highlight`` maps a field name (``title``,
    ``description``, ``tags``) to its marked-up text and is presentation
    only.
    """

    id: str
    title: str = ""
    kind: str = "item"
    path: tuple[str, ...] = ()
    score: float = 0.0
    tags: tuple[str, ...] = ()
    description: str | None = None
    status: str | None = None
    icon: str | None = None
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)
    highlight: dict[str, Any] | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        text = str(value).strip()
        if not text:
            raise ValueError("id must be non-empty")
        return text

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> float:
        try:
            score = float(value)
        except (TypeError, ValueError):
            return 0.0
        return score if score > 0 else 0.0

    @field_validator("path", "tags", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> Any:
        if isinstance(value, str):
            return (value,)
        if isinstance(value, (list, tuple)):
            return tuple(str(v) for v in value if v is not None)
        return ()
