from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from dashstate import DashboardApp, DashstateConfig, HealthLevel, JsonFileStorage, MemoryStorage
from dashstate.exceptions import DashstateTransportError
from dashstate.scheduling import ManualScheduler


async def _drain() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def test_components_are_optional() -> None:
    app = DashboardApp()

    assert app.health is None
    assert app.search is None
    assert app.catalog is None
    assert isinstance(app.storage, MemoryStorage)


def test_storage_path_selects_json_file_storage(tmp_path: Path) -> None:
    app = DashboardApp(DashstateConfig(storage_path=str(tmp_path / "s.json")))

    assert isinstance(app.storage, JsonFileStorage)
    app.favorites.add({"id": "a"})
    assert (tmp_path / "s.json").exists()


def test_entity_stores_are_created_once_with_config() -> None:
    app = DashboardApp(DashstateConfig(history_limit=2, favorites_key="favs"))

    assert app.favorites is app.favorites
    assert app.history.limit == 2
    app.favorites.add({"id": "a"})
    assert app.storage.get("favs") is not None


@pytest.mark.asyncio
async def test_health_snapshots_reach_state() -> None:
    async def fetch() -> Any:
        return {"status": "ok", "components": [{"name": "api", "status": "ok"}]}

    scheduler = ManualScheduler()
    async with DashboardApp(health_fetcher=fetch, scheduler=scheduler) as app:
        await _drain()
        assert app.state.health is not None
        assert app.state.health.overall == HealthLevel.HEALTHY
        assert app.health is not None and app.health.running

    assert not app.health.running
    assert scheduler.pending == 0


@pytest.mark.asyncio
async def test_health_failure_sets_unhealthy_and_records_error() -> None:
    async def fetch() -> Any:
        raise DashstateTransportError("HTTP 500", status_code=500)

    async with DashboardApp(health_fetcher=fetch, scheduler=ManualScheduler()) as app:
        await _drain()

        assert app.state.health is not None
        assert app.state.health.overall == HealthLevel.UNHEALTHY
        error = app.state.errors.get("health")
        assert error is not None
        assert error.status_code == 500


@pytest.mark.asyncio
async def test_search_and_catalog_share_the_store() -> None:
    async def backend(query: str, filters: Any) -> list[dict[str, Any]]:
        return [{"id": "n1", "title": "Pump"}]

    async def roots() -> list[dict[str, Any]]:
        return [{"id": "r1", "title": "Plant"}]

    async def node(node_id: str) -> dict[str, Any]:
        return {"id": node_id, "title": "Pump"}

    app = DashboardApp(search_backend=backend, fetch_roots=roots, fetch_node=node, scheduler=ManualScheduler())
    try:
        assert app.search is not None and app.catalog is not None
        await app.search.search_now("pump")
        await app.catalog.load_roots()
        await app.catalog.select("n1")  # type: ignore[misc]

        assert [r.id for r in app.state.search.results] == ["n1"]
        assert [r.id for r in app.state.catalog.roots] == ["r1"]
        assert [h.id for h in app.history.get_all()] == ["n1"]
    finally:
        await app.close()
