"""Catalog loading: roots and node details with superseding node loads."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from dashstate.entities.store import HistoryStore
from dashstate.models.catalog import CatalogNode
from dashstate.state.actions import (
    LoadNodeError,
    LoadNodeStart,
    LoadNodeSuccess,
    LoadRootsError,
    LoadRootsStart,
    LoadRootsSuccess,
    SelectNode,
)
from dashstate.state.policy import new_request_id
from dashstate.state.store import StateStore
from dashstate.tasks import LatestTaskRunner

_logger = logging.getLogger(__name__)

RootsFetcher = Callable[[], Awaitable[Sequence[CatalogNode | Mapping[str, Any]]]]
NodeFetcher = Callable[[str], Awaitable[CatalogNode | Mapping[str, Any]]]


def _status_code(exc: Exception) -> int | None:
    return getattr(exc, "status_code", None)


class CatalogLoader:
    """Dispatch catalog load actions around injected fetchers.

    Selecting a node that is already cached shows it without a fetch. A new
    node load cancels the previous one; its result is tagged with a request
    id so a late response is ignored by the reducer.
    """

    def __init__(
        self,
        store: StateStore,
        fetch_roots: RootsFetcher,
        fetch_node: NodeFetcher,
        *,
        runner: LatestTaskRunner | None = None,
        history: HistoryStore | None = None,
    ) -> None:
        self._store = store
        self._fetch_roots = fetch_roots
        self._fetch_node = fetch_node
        self._runner = runner or LatestTaskRunner()
        self._history = history

    def load_roots(self) -> asyncio.Task[None]:
        self._store.dispatch(LoadRootsStart())

        def on_result(roots: Sequence[CatalogNode | Mapping[str, Any]]) -> None:
            self._store.dispatch(LoadRootsSuccess(roots=list(roots)))

        def on_error(exc: Exception) -> None:
            self._store.dispatch(LoadRootsError(error=str(exc), status_code=_status_code(exc)))

        return self._runner.run("roots", self._fetch_roots, on_result=on_result, on_error=on_error)

    def select(self, node_id: str, *, refresh: bool = False) -> asyncio.Task[None] | None:
        """Select *node_id*; fetch its detail unless cached (or *refresh*)."""
        self._store.dispatch(SelectNode(node_id=node_id))
        cached = self._store.state.catalog.nodes.get(node_id)
        if cached is not None and not refresh:
            self._record_view(cached)
            return None
        return self.load_node(node_id)

    def load_node(self, node_id: str) -> asyncio.Task[None]:
        request_id = new_request_id()
        self._store.dispatch(LoadNodeStart(node_id=node_id, request_id=request_id))

        def on_result(raw: CatalogNode | Mapping[str, Any]) -> None:
            try:
                action = LoadNodeSuccess(node=raw, request_id=request_id)
            except ValidationError as exc:
                _logger.warning("Invalid node payload for %s: %s", node_id, exc)
                self._store.dispatch(
                    LoadNodeError(error=f"Invalid node payload for {node_id}", node_id=node_id, request_id=request_id)
                )
                return
            self._store.dispatch(action)
            self._record_view(action.node)

        def on_error(exc: Exception) -> None:
            self._store.dispatch(
                LoadNodeError(
                    error=str(exc) or type(exc).__name__,
                    status_code=_status_code(exc),
                    node_id=node_id,
                    request_id=request_id,
                )
            )

        return self._runner.run("node", lambda: self._fetch_node(node_id), on_result=on_result, on_error=on_error)

    def _record_view(self, node: CatalogNode) -> None:
        if self._history is not None:
            self._history.add_from_node(node)

    async def aclose(self) -> None:
        await self._runner.aclose()
