"""Actions folded by the reducer.

One frozen model per action kind, each with a literal ``type`` and its own
typed fields. ``at`` is stamped when the action is created; the reducer
uses it wherever it needs "now" so replaying a recorded action log is
deterministic.

:func:`parse_action` accepts the loose ``{"type": ..., "payload": ...}``
shape used by UI layers and action logs.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, ClassVar, Literal, get_args

from pydantic import AliasChoices, Field, ValidationError, field_validator

from dashstate._redact import redact_for_log
from dashstate.models._base import DashBaseModel, parse_timestamp, utcnow
from dashstate.models.catalog import CatalogNode
from dashstate.models.navigation import NavigationEntry
from dashstate.models.search import SearchFilters, SearchResult, SortCriteria

_logger = logging.getLogger(__name__)


def _valid_items(model: type[DashBaseModel], value: Any) -> tuple[Any, ...]:
    """Validate list items one by one, dropping the invalid ones."""
    if not isinstance(value, (list, tuple)):
        return ()
    items: list[Any] = []
    for item in value:
        if isinstance(item, model):
            items.append(item)
            continue
        try:
            items.append(model.model_validate(item))
        except ValidationError as exc:
            _logger.debug("Dropping invalid %s: %s", model.__name__, exc)
    return tuple(items)


def _raw_entry(value: Any) -> NavigationEntry | dict[str, Any]:
    """Keep navigation entries as given; the reducer sanitizes them with the action time."""
    if isinstance(value, NavigationEntry):
        return value
    if isinstance(value, Mapping):
        return dict(value)
    raise ValueError("entry must be an object")


class BaseAction(DashBaseModel):
    """Common base for every action.

    In :func:`parse_action` a non-object ``payload`` maps to ``payload_field``;
    with ``wraps_object_payload`` an object payload maps there as well instead
    of supplying the action's fields.
    """

    payload_field: ClassVar[str | None] = None
    wraps_object_payload: ClassVar[bool] = False

    type: str
    at: datetime = Field(default_factory=utcnow)

    @field_validator("at", mode="before")
    @classmethod
    def _coerce_at(cls, value: Any) -> Any:
        # Naive datetimes are taken as UTC so action times stay comparable.
        return parse_timestamp(value) or value


class _ErrorAction(BaseAction):
    payload_field = "error"

    error: str = "Unknown error"
    status_code: int | None = None
    request_id: str | None = None


# ------------------------------------------------------------------
# Catalog
# ------------------------------------------------------------------


class LoadRootsStart(BaseAction):
    type: Literal["LOAD_ROOTS_START"] = "LOAD_ROOTS_START"


class LoadRootsSuccess(BaseAction):
    payload_field = "roots"

    type: Literal["LOAD_ROOTS_SUCCESS"] = "LOAD_ROOTS_SUCCESS"
    roots: tuple[CatalogNode, ...] = ()

    @field_validator("roots", mode="before")
    @classmethod
    def _drop_invalid(cls, value: Any) -> tuple[Any, ...]:
        return _valid_items(CatalogNode, value)


class LoadRootsError(_ErrorAction):
    type: Literal["LOAD_ROOTS_ERROR"] = "LOAD_ROOTS_ERROR"


class SelectNode(BaseAction):
    payload_field = "node_id"

    type: Literal["SELECT_NODE"] = "SELECT_NODE"
    node_id: str


class LoadNodeStart(BaseAction):
    type: Literal["LOAD_NODE_START"] = "LOAD_NODE_START"
    node_id: str | None = None
    request_id: str | None = None


class LoadNodeSuccess(BaseAction):
    payload_field = "node"
    wraps_object_payload = True

    type: Literal["LOAD_NODE_SUCCESS"] = "LOAD_NODE_SUCCESS"
    node: CatalogNode
    request_id: str | None = None


class LoadNodeError(_ErrorAction):
    type: Literal["LOAD_NODE_ERROR"] = "LOAD_NODE_ERROR"
    node_id: str | None = None


class CacheSetNode(BaseAction):
    payload_field = "node"
    wraps_object_payload = True

    type: Literal["CACHE_SET_NODE"] = "CACHE_SET_NODE"
    node: CatalogNode


# ------------------------------------------------------------------
# Search
# ------------------------------------------------------------------


class SetSearchQuery(BaseAction):
    payload_field = "query"

    type: Literal["SET_SEARCH_QUERY"] = "SET_SEARCH_QUERY"
    query: str = ""


class SetSearchFilters(BaseAction):
    payload_field = "filters"
    wraps_object_payload = True

    type: Literal["SET_SEARCH_FILTERS"] = "SET_SEARCH_FILTERS"
    filters: SearchFilters = Field(default_factory=SearchFilters)


class SetSearchSort(BaseAction):
    payload_field = "sort"
    wraps_object_payload = True

    type: Literal["SET_SEARCH_SORT"] = "SET_SEARCH_SORT"
    sort: SortCriteria = Field(default_factory=SortCriteria)


class SetSearchActive(BaseAction):
    payload_field = "active"

    type: Literal["SET_SEARCH_ACTIVE"] = "SET_SEARCH_ACTIVE"
    active: bool


class SearchStart(BaseAction):
    type: Literal["SEARCH_START"] = "SEARCH_START"
    query: str | None = None
    request_id: str | None = None


class SearchSuccess(BaseAction):
    type: Literal["SEARCH_SUCCESS"] = "SEARCH_SUCCESS"
    query: str = ""
    results: tuple[SearchResult, ...] = ()
    request_id: str | None = None

    @field_validator("results", mode="before")
    @classmethod
    def _drop_invalid(cls, value: Any) -> tuple[Any, ...]:
        return _valid_items(SearchResult, value)


class SearchError(_ErrorAction):
    type: Literal["SEARCH_ERROR"] = "SEARCH_ERROR"


class SearchClear(BaseAction):
    type: Literal["SEARCH_CLEAR"] = "SEARCH_CLEAR"


# ------------------------------------------------------------------
# Navigation
# ------------------------------------------------------------------


class NavPush(BaseAction):
    payload_field = "entry"
    wraps_object_payload = True

    type: Literal["NAV_PUSH"] = "NAV_PUSH"
    entry: Any

    @field_validator("entry", mode="before")
    @classmethod
    def _check_entry(cls, value: Any) -> Any:
        return _raw_entry(value)


class NavPop(BaseAction):
    type: Literal["NAV_POP"] = "NAV_POP"


class NavForward(BaseAction):
    type: Literal["NAV_FORWARD"] = "NAV_FORWARD"


class NavJump(BaseAction):
    """Jump by position (``index``) or to the first entry with ``entry_id``."""

    payload_field = "index"

    type: Literal["NAV_JUMP"] = "NAV_JUMP"
    index: int | None = None
    entry_id: str | None = None


class NavReplace(BaseAction):
    type: Literal["NAV_REPLACE"] = "NAV_REPLACE"
    index: int
    entry: Any

    @field_validator("entry", mode="before")
    @classmethod
    def _check_entry(cls, value: Any) -> Any:
        return _raw_entry(value)


class NavRemove(BaseAction):
    payload_field = "entry_id"

    type: Literal["NAV_REMOVE"] = "NAV_REMOVE"
    entry_id: str


class NavClear(BaseAction):
    type: Literal["NAV_CLEAR"] = "NAV_CLEAR"


# ------------------------------------------------------------------
# Health, settings, builder
# ------------------------------------------------------------------


class HealthUpdate(BaseAction):
    """Raw backend health payload (normalized by the reducer) or a ready snapshot."""

    payload_field = "payload"
    wraps_object_payload = True

    type: Literal["HEALTH_UPDATE"] = "HEALTH_UPDATE"
    payload: Any = None


class SetTheme(BaseAction):
    payload_field = "theme"

    type: Literal["SET_THEME"] = "SET_THEME"
    theme: str


class SetLanguage(BaseAction):
    payload_field = "language"

    type: Literal["SET_LANGUAGE"] = "SET_LANGUAGE"
    language: str


class SetLayout(BaseAction):
    payload_field = "layout"
    wraps_object_payload = True

    type: Literal["SET_LAYOUT"] = "SET_LAYOUT"
    layout: dict[str, Any] = Field(default_factory=dict)


# ------------------------------------------------------------------
# Loading & errors
# ------------------------------------------------------------------


class SetLoading(BaseAction):
    type: Literal["SET_LOADING"] = "SET_LOADING"
    key: str
    value: bool = True


class SetError(BaseAction):
    type: Literal["SET_ERROR"] = "SET_ERROR"
    domain: str = Field(validation_alias=AliasChoices("domain", "key"))
    message: str = Field(default="Unknown error", validation_alias=AliasChoices("message", "value", "error"))
    status_code: int | None = Field(default=None, validation_alias=AliasChoices("statusCode", "status_code"))
    code: str | None = None


class ClearError(BaseAction):
    payload_field = "domain"

    type: Literal["CLEAR_ERROR"] = "CLEAR_ERROR"
    domain: str


class ClearErrors(BaseAction):
    type: Literal["CLEAR_ERRORS"] = "CLEAR_ERRORS"


Action = (
    LoadRootsStart
    | LoadRootsSuccess
    | LoadRootsError
    | SelectNode
    | LoadNodeStart
    | LoadNodeSuccess
    | LoadNodeError
    | CacheSetNode
    | SetSearchQuery
    | SetSearchFilters
    | SetSearchSort
    | SetSearchActive
    | SearchStart
    | SearchSuccess
    | SearchError
    | SearchClear
    | NavPush
    | NavPop
    | NavForward
    | NavJump
    | NavReplace
    | NavRemove
    | NavClear
    | HealthUpdate
    | SetTheme
    | SetLanguage
    | SetLayout
    | SetLoading
    | SetError
    | ClearError
    | ClearErrors
)

ACTION_TYPES: dict[str, type[BaseAction]] = {cls.model_fields["type"].default: cls for cls in get_args(Action)}


def parse_action(raw: Mapping[str, Any], *, at: datetime | None = None) -> BaseAction | None:
    """Build an action from ``{"type": ..., "payload": ..., "at": ...}``.

    An object payload supplies the action's fields unless the action wraps
    it whole; any other payload goes to the action's ``payload_field``.
    Unknown types and payloads that fail validation return ``None``.
    """
    if not isinstance(raw, Mapping):
        return None
    cls = ACTION_TYPES.get(str(raw.get("type", "")).strip().upper())
    if cls is None:
        _logger.debug("Ignoring unknown action type %r", raw.get("type"))
        return None

    payload = raw.get("payload")
    fields: dict[str, Any]
    if isinstance(payload, Mapping) and not cls.wraps_object_payload:
        fields = dict(payload)
    elif payload is not None and cls.payload_field is not None:
        fields = {cls.payload_field: payload}
    else:
        fields = {}

    stamp = raw.get("at", at)
    if stamp is not None:
        fields["at"] = stamp
    fields["type"] = cls.model_fields["type"].default

    try:
        return cls.model_validate(fields)
    except ValidationError as exc:
        _logger.debug("Invalid %s action: %s (%s)", cls.__name__, exc, redact_for_log(dict(raw)))
        return None
