"""Composition root wiring the store, entity stores and async services."""

from __future__ import annotations

import logging
from typing import Any

from dashstate._transport import HttpJsonFetcher, JsonFetcher
from dashstate.catalog.loader import CatalogLoader, NodeFetcher, RootsFetcher
from dashstate.config import DashstateConfig
from dashstate.entities.store import FavoritesStore, HistoryStore
from dashstate.health.monitor import HealthMonitor
from dashstate.health.normalizer import HealthNormalizer
from dashstate.models._base import utcnow
from dashstate.models.health import HealthSnapshot
from dashstate.scheduling import AsyncioScheduler, Scheduler
from dashstate.search.service import SearchBackend, SearchController
from dashstate.state.actions import BaseAction, HealthUpdate, SetError
from dashstate.state.app_state import AppState
from dashstate.state.reducer import ReducerContext
from dashstate.state.store import StateStore
from dashstate.storage import JsonFileStorage, KeyValueStorage, MemoryStorage

_logger = logging.getLogger(__name__)


class DashboardApp:
    """Owns one instance of every stateful component.

    Usage::

        async with DashboardApp(config, search_backend=backend) as app:
            app.search.on_input("pump")
            app.favorites.add({"id": "n1", "title": "Pump"})

    Favorites and history stores are created on first access. The health
    monitor exists when a fetcher is injected or ``config.health_url`` is
    set; search and catalog services exist when their fetchers are given.
    """

    def __init__(
        self,
        config: DashstateConfig | None = None,
        *,
        storage: KeyValueStorage | None = None,
        scheduler: Scheduler | None = None,
        health_fetcher: JsonFetcher | None = None,
        search_backend: SearchBackend | None = None,
        fetch_roots: RootsFetcher | None = None,
        fetch_node: NodeFetcher | None = None,
    ) -> None:
        self._config = config or DashstateConfig()
        self._storage = storage or self._default_storage(self._config)
        self._scheduler = scheduler or AsyncioScheduler()
        self._normalizer = HealthNormalizer(
            self._config.thresholds,
            strict_validation=self._config.strict_health_validation,
        )
        self._store = StateStore(
            config=self._config,
            context=ReducerContext(
                normalizer=self._normalizer,
                prevent_duplicates=self._config.navigation_prevent_duplicates,
            ),
            clock=utcnow,
        )
        self._favorites: FavoritesStore | None = None
        self._history: HistoryStore | None = None

        self._owned_fetcher: HttpJsonFetcher | None = None
        if health_fetcher is None and self._config.health_url:
            self._owned_fetcher = HttpJsonFetcher(self._config.health_url, timeout=self._config.health_timeout)
            health_fetcher = self._owned_fetcher

        self._health: HealthMonitor | None = None
        if health_fetcher is not None:
            self._health = HealthMonitor(
                health_fetcher,
                self._on_health,
                normalizer=self._normalizer,
                scheduler=self._scheduler,
                interval=self._config.health_poll_interval,
                timeout=self._config.health_timeout,
                on_error=self._on_health_error,
            )

        self._search: SearchController | None = None
        if search_backend is not None:
            self._search = SearchController(
                self._store,
                search_backend,
                scheduler=self._scheduler,
                debounce_seconds=self._config.search_debounce_seconds,
            )

        self._catalog: CatalogLoader | None = None
        if fetch_roots is not None and fetch_node is not None:
            self._catalog = CatalogLoader(self._store, fetch_roots, fetch_node, history=self.history)

    @staticmethod
    def _default_storage(config: DashstateConfig) -> KeyValueStorage:
        if config.storage_path:
            return JsonFileStorage(config.storage_path)
        return MemoryStorage()

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def config(self) -> DashstateConfig:
        return self._config

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def state(self) -> AppState:
        return self._store.state

    @property
    def storage(self) -> KeyValueStorage:
        return self._storage

    @property
    def favorites(self) -> FavoritesStore:
        if self._favorites is None:
            self._favorites = FavoritesStore(self._storage, self._config.favorites_key)
        return self._favorites

    @property
    def history(self) -> HistoryStore:
        if self._history is None:
            self._history = HistoryStore(
                self._storage,
                self._config.history_key,
                limit=self._config.history_limit,
            )
        return self._history

    @property
    def health(self) -> HealthMonitor | None:
        return self._health

    @property
    def search(self) -> SearchController | None:
        return self._search

    @property
    def catalog(self) -> CatalogLoader | None:
        return self._catalog

    def dispatch(self, action: BaseAction) -> AppState:
        return self._store.dispatch(action)

    # ------------------------------------------------------------------
    # Health wiring
    # ------------------------------------------------------------------

    def _on_health(self, snapshot: HealthSnapshot) -> None:
        self._store.dispatch(HealthUpdate(payload=snapshot, at=snapshot.last_checked))

    def _on_health_error(self, exc: Exception) -> None:
        self._store.dispatch(
            SetError(
                domain="health",
                message=str(exc) or type(exc).__name__,
                status_code=getattr(exc, "status_code", None),
            )
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._health is not None:
            self._health.start()

    async def close(self) -> None:
        if self._health is not None:
            self._health.stop()
        if self._search is not None:
            self._search.cancel()
        if self._catalog is not None:
            await self._catalog.aclose()
        if self._owned_fetcher is not None:
            await self._owned_fetcher.close()

    async def __aenter__(self) -> DashboardApp:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
