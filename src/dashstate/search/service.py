"""Search side effects: debounced input and superseding search runs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from dashstate._constants import SEARCH_DEBOUNCE_S
from dashstate.models.search import SearchFilters, SearchResult
from dashstate.scheduling import AsyncioScheduler, Debouncer, Scheduler
from dashstate.state.actions import SearchError, SearchStart, SearchSuccess, SetSearchQuery
from dashstate.state.policy import new_request_id
from dashstate.state.store import StateStore
from dashstate.tasks import LatestTaskRunner

_logger = logging.getLogger(__name__)

SearchBackend = Callable[[str, SearchFilters], Awaitable[Sequence[SearchResult | Mapping[str, Any]]]]

_RUN_KEY = "search"


class SearchController:
    """Turns search input into ``SEARCH_*`` actions.

    Every keystroke goes through :meth:`on_input`, which records the query
    and resets the debounce timer. When the timer fires, the backend is
    queried for candidates; the reducer ranks them. A new run cancels the
    previous in-flight one, and each run's actions carry its request id so
    a late result from a superseded run is dropped by the reducer too.
    """

    def __init__(
        self,
        store: StateStore,
        backend: SearchBackend,
        *,
        scheduler: Scheduler | None = None,
        debounce_seconds: float = SEARCH_DEBOUNCE_S,
        runner: LatestTaskRunner | None = None,
    ) -> None:
        self._store = store
        self._backend = backend
        self._runner = runner or LatestTaskRunner()
        self._debouncer = Debouncer(scheduler or AsyncioScheduler(), debounce_seconds, self._execute)

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def on_input(self, query: str) -> None:
        self._store.dispatch(SetSearchQuery(query=query))
        if not query.strip():
            self.cancel()
            return
        self._debouncer(query)

    def search_now(self, query: str) -> asyncio.Task[None]:
        """Run *query* immediately, skipping the debounce."""
        self._debouncer.cancel()
        return self._execute(query)

    def flush(self) -> bool:
        return self._debouncer.flush()

    def cancel(self) -> None:
        """Drop the pending debounce and cancel the in-flight run."""
        self._debouncer.cancel()
        self._runner.cancel(_RUN_KEY)

    def _execute(self, query: str) -> asyncio.Task[None]:
        request_id = new_request_id()
        filters = self._store.state.search.filters
        self._store.dispatch(SearchStart(query=query, request_id=request_id))
        _logger.debug("Search run %s for query=%r", request_id, query)

        def on_result(results: Sequence[SearchResult | Mapping[str, Any]]) -> None:
            self._store.dispatch(SearchSuccess(query=query, results=list(results), request_id=request_id))

        def on_error(exc: Exception) -> None:
            self._store.dispatch(
                SearchError(
                    error=str(exc) or type(exc).__name__,
                    status_code=getattr(exc, "status_code", None),
                    request_id=request_id,
                )
            )

        return self._runner.run(
            _RUN_KEY,
            lambda: self._backend(query, filters),
            on_result=on_result,
            on_error=on_error,
        )
