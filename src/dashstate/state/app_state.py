"""Application state snapshot.

:class:`AppState` and all of its sections are frozen models. The reducer
builds new snapshots with ``model_copy(update=...)`` so sections an action
does not own are carried over by reference.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from dashstate.config import DashstateConfig
from dashstate.models._base import DashBaseModel
from dashstate.models.catalog import CatalogNode
from dashstate.models.health import HealthSnapshot
from dashstate.models.navigation import NavigationStackState
from dashstate.models.search import SearchFilters, SearchResult, SortCriteria
from dashstate.navigation.stack import create_empty_stack


class ErrorInfo(DashBaseModel):
    """An error recorded under ``state.errors`` for one domain."""

    domain: str
    message: str
    status_code: int | None = None
    code: str | None = None
    at: datetime


class ErrorsState(DashBaseModel):
    by_domain: dict[str, ErrorInfo] = Field(default_factory=dict)
    last_error: ErrorInfo | None = None

    def get(self, domain: str) -> ErrorInfo | None:
        return self.by_domain.get(domain)

    def __contains__(self, domain: object) -> bool:
        return domain in self.by_domain


class SearchState(DashBaseModel):
    """Search section.

    ``raw_results`` keeps the last candidate set so a filter or sort change
    can be re-ranked without another search run; ``results`` is the ranked
    output shown to the user.
    """

    query: str = ""
    active: bool = False
    is_open: bool = False
    is_loading: bool = False
    filters: SearchFilters = Field(default_factory=SearchFilters)
    sort: SortCriteria = Field(default_factory=SortCriteria)
    raw_results: tuple[SearchResult, ...] = ()
    results: tuple[SearchResult, ...] = ()
    request_id: str | None = None
    last_search: datetime | None = None


class CatalogState(DashBaseModel):
    """Catalog section: roots, the selected node and the node detail cache."""

    roots: tuple[CatalogNode, ...] = ()
    roots_loading: bool = False
    selected_node_id: str | None = None
    node: CatalogNode | None = None
    node_loading: bool = False
    node_request_id: str | None = None
    nodes: dict[str, CatalogNode] = Field(default_factory=dict)
    last_updated: datetime | None = None


class BuilderState(DashBaseModel):
    layout: dict[str, Any] | None = None
    active_layout: str | None = None


class SettingsState(DashBaseModel):
    theme: str = "light"
    language: str = "en"


class AppState(DashBaseModel):
    navigation: NavigationStackState = Field(default_factory=create_empty_stack)
    search: SearchState = Field(default_factory=SearchState)
    health: HealthSnapshot | None = None
    catalog: CatalogState = Field(default_factory=CatalogState)
    builder: BuilderState = Field(default_factory=BuilderState)
    settings: SettingsState = Field(default_factory=SettingsState)
    errors: ErrorsState = Field(default_factory=ErrorsState)
    loading: dict[str, bool] = Field(default_factory=dict)


def initial_state(config: DashstateConfig | None = None) -> AppState:
    """Default snapshot for *config* (library defaults when omitted)."""
    config = config or DashstateConfig()
    return AppState(
        navigation=create_empty_stack(config.navigation_max_size),
        settings=SettingsState(theme=config.default_theme, language=config.default_language),
    )
