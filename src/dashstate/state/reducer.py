"""Pure reducer: ``reduce(state, action) -> AppState``.

The reducer is synchronous and total. Each action touches only the sections
it owns; every other section is carried over by reference. Actions of an
unknown class return the input state itself.

Timestamps written into state come from ``action.at``, never from the
clock, so replaying the same action list from the same initial state
produces an equal final state.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from dashstate.config import DashstateConfig
from dashstate.health.normalizer import FALLBACK_COMPONENT, HealthNormalizer
from dashstate.models.health import HealthSnapshot
from dashstate.navigation import stack
from dashstate.search.ranking import rank
from dashstate.state import actions as a
from dashstate.state.app_state import AppState, CatalogState, ErrorInfo, ErrorsState, SearchState
from dashstate.state.policy import should_accept_result

_logger = logging.getLogger(__name__)

REDUCER_DOMAIN = "reducer"


@dataclasses.dataclass(frozen=True)
class ReducerContext:
    """Collaborators the reducer delegates to.

    Parameters
    ----------
    normalizer : HealthNormalizer
        Turns raw ``HEALTH_UPDATE`` payloads into snapshots.
    prevent_duplicates : bool
        Skip a navigation push equal to the current entry.
    """

    normalizer: HealthNormalizer = dataclasses.field(default_factory=HealthNormalizer)
    prevent_duplicates: bool = False

    @classmethod
    def from_config(cls, config: DashstateConfig) -> ReducerContext:
        return cls(
            normalizer=HealthNormalizer(config.thresholds, strict_validation=config.strict_health_validation),
            prevent_duplicates=config.navigation_prevent_duplicates,
        )


_DEFAULT_CONTEXT = ReducerContext()

Handler = Callable[[AppState, Any, ReducerContext], AppState]


# ------------------------------------------------------------------
# Section helpers
# ------------------------------------------------------------------


def _catalog(state: AppState, **changes: Any) -> AppState:
    return state.model_copy(update={"catalog": state.catalog.model_copy(update=changes)})


def _search(state: AppState, **changes: Any) -> AppState:
    return state.model_copy(update={"search": state.search.model_copy(update=changes)})


def _record_error(
    errors: ErrorsState,
    domain: str,
    message: str,
    at: datetime,
    *,
    status_code: int | None = None,
    code: str | None = None,
) -> ErrorsState:
    info = ErrorInfo(domain=domain, message=message, status_code=status_code, code=code, at=at)
    return ErrorsState(by_domain={**errors.by_domain, domain: info}, last_error=info)


def _drop_error(errors: ErrorsState, domain: str) -> ErrorsState:
    if domain not in errors.by_domain:
        return errors
    remaining = {key: value for key, value in errors.by_domain.items() if key != domain}
    last = errors.last_error
    if last is not None and last.domain == domain:
        last = None
    return ErrorsState(by_domain=remaining, last_error=last)


def _with_errors(state: AppState, errors: ErrorsState, **sections: Any) -> AppState:
    if errors is not state.errors:
        sections["errors"] = errors
    return state.model_copy(update=sections) if sections else state


# ------------------------------------------------------------------
# Catalog
# ------------------------------------------------------------------


def _load_roots_start(state: AppState, action: a.LoadRootsStart, ctx: ReducerContext) -> AppState:
    catalog = state.catalog.model_copy(update={"roots_loading": True})
    return _with_errors(state, _drop_error(state.errors, "roots"), catalog=catalog)


def _load_roots_success(state: AppState, action: a.LoadRootsSuccess, ctx: ReducerContext) -> AppState:
    catalog = state.catalog.model_copy(
        update={"roots": action.roots, "roots_loading": False, "last_updated": action.at}
    )
    return _with_errors(state, _drop_error(state.errors, "roots"), catalog=catalog)


def _load_roots_error(state: AppState, action: a.LoadRootsError, ctx: ReducerContext) -> AppState:
    catalog = state.catalog.model_copy(update={"roots_loading": False, "last_updated": action.at})
    errors = _record_error(state.errors, "roots", action.error, action.at, status_code=action.status_code)
    return _with_errors(state, errors, catalog=catalog)


def _select_node(state: AppState, action: a.SelectNode, ctx: ReducerContext) -> AppState:
    catalog = state.catalog
    node = catalog.nodes.get(action.node_id)
    if node is None:
        node = next((root for root in catalog.roots if root.id == action.node_id), None)
    return _catalog(state, selected_node_id=action.node_id, node=node)


def _load_node_start(state: AppState, action: a.LoadNodeStart, ctx: ReducerContext) -> AppState:
    catalog = state.catalog.model_copy(update={"node_loading": True, "node_request_id": action.request_id})
    return _with_errors(state, _drop_error(state.errors, "node"), catalog=catalog)


def _accept_node_result(catalog: CatalogState, request_id: str | None) -> bool:
    accepted = should_accept_result(recorded_request_id=catalog.node_request_id, incoming_request_id=request_id)
    if not accepted:
        _logger.debug("Dropping superseded node result request_id=%s", request_id)
    return accepted


def _load_node_success(state: AppState, action: a.LoadNodeSuccess, ctx: ReducerContext) -> AppState:
    if not _accept_node_result(state.catalog, action.request_id):
        return state
    node = action.node
    catalog = state.catalog.model_copy(
        update={
            "node": node,
            "node_loading": False,
            "nodes": {**state.catalog.nodes, node.id: node},
        }
    )
    return _with_errors(state, _drop_error(state.errors, "node"), catalog=catalog)


def _load_node_error(state: AppState, action: a.LoadNodeError, ctx: ReducerContext) -> AppState:
    if not _accept_node_result(state.catalog, action.request_id):
        return state
    catalog = state.catalog.model_copy(update={"node_loading": False})
    errors = _record_error(state.errors, "node", action.error, action.at, status_code=action.status_code)
    return _with_errors(state, errors, catalog=catalog)


def _cache_set_node(state: AppState, action: a.CacheSetNode, ctx: ReducerContext) -> AppState:
    node = action.node
    return _catalog(state, nodes={**state.catalog.nodes, node.id: node}, last_updated=action.at)


# ------------------------------------------------------------------
# Search
# ------------------------------------------------------------------


def _ranked(search: SearchState, **changes: Any) -> SearchState:
    """Apply *changes* and re-rank the stored candidates."""
    updated = search.model_copy(update=changes)
    results = tuple(rank(updated.raw_results, updated.query, updated.filters, updated.sort))
    return updated.model_copy(update={"results": results})


def _set_search_query(state: AppState, action: a.SetSearchQuery, ctx: ReducerContext) -> AppState:
    if action.query.strip():
        return _search(state, query=action.query)
    return _search(state, query=action.query, active=False, is_open=False)


def _set_search_filters(state: AppState, action: a.SetSearchFilters, ctx: ReducerContext) -> AppState:
    return state.model_copy(update={"search": _ranked(state.search, filters=action.filters)})


def _set_search_sort(state: AppState, action: a.SetSearchSort, ctx: ReducerContext) -> AppState:
    return state.model_copy(update={"search": _ranked(state.search, sort=action.sort)})


def _set_search_active(state: AppState, action: a.SetSearchActive, ctx: ReducerContext) -> AppState:
    if action.active:
        return _search(state, active=True, is_open=True)
    return _search(state, active=False, is_open=False, results=(), raw_results=())


def _search_start(state: AppState, action: a.SearchStart, ctx: ReducerContext) -> AppState:
    changes: dict[str, Any] = {"is_loading": True, "request_id": action.request_id}
    if action.query is not None:
        changes["query"] = action.query
    search = state.search.model_copy(update=changes)
    return _with_errors(state, _drop_error(state.errors, "search"), search=search)


def _accept_search_result(search: SearchState, request_id: str | None) -> bool:
    accepted = should_accept_result(recorded_request_id=search.request_id, incoming_request_id=request_id)
    if not accepted:
        _logger.debug("Dropping superseded search result request_id=%s", request_id)
    return accepted


def _search_success(state: AppState, action: a.SearchSuccess, ctx: ReducerContext) -> AppState:
    if not _accept_search_result(state.search, action.request_id):
        return state
    search = _ranked(
        state.search,
        query=action.query,
        raw_results=action.results,
        is_loading=False,
        last_search=action.at,
    )
    return _with_errors(state, _drop_error(state.errors, "search"), search=search)


def _search_error(state: AppState, action: a.SearchError, ctx: ReducerContext) -> AppState:
    if not _accept_search_result(state.search, action.request_id):
        return state
    search = state.search.model_copy(update={"is_loading": False})
    errors = _record_error(state.errors, "search", action.error, action.at, status_code=action.status_code)
    return _with_errors(state, errors, search=search)


def _search_clear(state: AppState, action: a.SearchClear, ctx: ReducerContext) -> AppState:
    return _search(
        state,
        query="",
        results=(),
        raw_results=(),
        is_open=False,
        active=False,
        is_loading=False,
    )


# ------------------------------------------------------------------
# Navigation
# ------------------------------------------------------------------


def _navigate(state: AppState, result: stack.StackResult) -> AppState:
    if result.error is not None:
        _logger.debug("Navigation action rejected: %s", result.error)
    if not result.changed:
        return state
    return state.model_copy(update={"navigation": result.state})


def _nav_push(state: AppState, action: a.NavPush, ctx: ReducerContext) -> AppState:
    return _navigate(
        state,
        stack.push(state.navigation, action.entry, prevent_duplicates=ctx.prevent_duplicates, now=action.at),
    )


def _nav_pop(state: AppState, action: a.NavPop, ctx: ReducerContext) -> AppState:
    return _navigate(state, stack.pop(state.navigation))


def _nav_forward(state: AppState, action: a.NavForward, ctx: ReducerContext) -> AppState:
    return _navigate(state, stack.forward(state.navigation))


def _nav_jump(state: AppState, action: a.NavJump, ctx: ReducerContext) -> AppState:
    if action.index is not None:
        return _navigate(state, stack.jump_to_index(state.navigation, action.index))
    if action.entry_id is not None:
        return _navigate(state, stack.jump_to_entry(state.navigation, action.entry_id))
    return state


def _nav_replace(state: AppState, action: a.NavReplace, ctx: ReducerContext) -> AppState:
    return _navigate(state, stack.replace(state.navigation, action.index, action.entry, now=action.at))


def _nav_remove(state: AppState, action: a.NavRemove, ctx: ReducerContext) -> AppState:
    return _navigate(state, stack.remove_entry(state.navigation, action.entry_id))


def _nav_clear(state: AppState, action: a.NavClear, ctx: ReducerContext) -> AppState:
    return _navigate(state, stack.clear(state.navigation))


# ------------------------------------------------------------------
# Health, settings, builder, loading, errors
# ------------------------------------------------------------------


def _health_update(state: AppState, action: a.HealthUpdate, ctx: ReducerContext) -> AppState:
    payload = action.payload
    if isinstance(payload, HealthSnapshot):
        snapshot = payload
    else:
        snapshot = ctx.normalizer.normalize(payload, now=action.at)
    if snapshot.component(FALLBACK_COMPONENT) is not None:
        return state.model_copy(update={"health": snapshot})
    # A real reading supersedes an earlier fetch failure.
    return _with_errors(state, _drop_error(state.errors, "health"), health=snapshot)


def _set_theme(state: AppState, action: a.SetTheme, ctx: ReducerContext) -> AppState:
    if state.settings.theme == action.theme:
        return state
    return state.model_copy(update={"settings": state.settings.model_copy(update={"theme": action.theme})})


def _set_language(state: AppState, action: a.SetLanguage, ctx: ReducerContext) -> AppState:
    if state.settings.language == action.language:
        return state
    return state.model_copy(update={"settings": state.settings.model_copy(update={"language": action.language})})


def _set_layout(state: AppState, action: a.SetLayout, ctx: ReducerContext) -> AppState:
    layout_type = action.layout.get("type")
    builder = state.builder.model_copy(
        update={
            "layout": dict(action.layout),
            "active_layout": str(layout_type) if layout_type is not None else state.builder.active_layout,
        }
    )
    return state.model_copy(update={"builder": builder})


def _set_loading(state: AppState, action: a.SetLoading, ctx: ReducerContext) -> AppState:
    if state.loading.get(action.key) == action.value:
        return state
    return state.model_copy(update={"loading": {**state.loading, action.key: action.value}})


def _set_error(state: AppState, action: a.SetError, ctx: ReducerContext) -> AppState:
    errors = _record_error(
        state.errors,
        action.domain,
        action.message,
        action.at,
        status_code=action.status_code,
        code=action.code,
    )
    return state.model_copy(update={"errors": errors})


def _clear_error(state: AppState, action: a.ClearError, ctx: ReducerContext) -> AppState:
    return _with_errors(state, _drop_error(state.errors, action.domain))


def _clear_errors(state: AppState, action: a.ClearErrors, ctx: ReducerContext) -> AppState:
    if not state.errors.by_domain and state.errors.last_error is None:
        return state
    return state.model_copy(update={"errors": ErrorsState()})


_HANDLERS: dict[type[a.BaseAction], Handler] = {
    a.LoadRootsStart: _load_roots_start,
    a.LoadRootsSuccess: _load_roots_success,
    a.LoadRootsError: _load_roots_error,
    a.SelectNode: _select_node,
    a.LoadNodeStart: _load_node_start,
    a.LoadNodeSuccess: _load_node_success,
    a.LoadNodeError: _load_node_error,
    a.CacheSetNode: _cache_set_node,
    a.SetSearchQuery: _set_search_query,
    a.SetSearchFilters: _set_search_filters,
    a.SetSearchSort: _set_search_sort,
    a.SetSearchActive: _set_search_active,
    a.SearchStart: _search_start,
    a.SearchSuccess: _search_success,
    a.SearchError: _search_error,
    a.SearchClear: _search_clear,
    a.NavPush: _nav_push,
    a.NavPop: _nav_pop,
    a.NavForward: _nav_forward,
    a.NavJump: _nav_jump,
    a.NavReplace: _nav_replace,
    a.NavRemove: _nav_remove,
    a.NavClear: _nav_clear,
    a.HealthUpdate: _health_update,
    a.SetTheme: _set_theme,
    a.SetLanguage: _set_language,
    a.SetLayout: _set_layout,
    a.SetLoading: _set_loading,
    a.SetError: _set_error,
    a.ClearError: _clear_error,
    a.ClearErrors: _clear_errors,
}


def reduce(state: AppState, action: Any, context: ReducerContext | None = None) -> AppState:
    """Fold *action* into *state*.

    Never raises: a failing handler is logged and recorded as an error under
    the ``reducer`` domain.
    """
    handler = _HANDLERS.get(type(action))
    if handler is None:
        return state
    try:
        return handler(state, action, context or _DEFAULT_CONTEXT)
    except Exception as exc:
        _logger.warning("Reducer failed on %s: %s", action.type, exc, exc_info=True)
        errors = _record_error(state.errors, REDUCER_DOMAIN, f"{action.type} failed: {exc}", action.at)
        return state.model_copy(update={"errors": errors})
