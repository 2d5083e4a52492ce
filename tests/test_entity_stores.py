from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from dashstate.entities import FavoritesStore, HistoryStore, PersistentEntityStore
from dashstate.exceptions import DashstateStorageError
from dashstate.models import CatalogNode, FavoriteEntry, HistoryEntry
from dashstate.storage import JsonFileStorage, MemoryStorage

FAV_KEY = "fc.favorites.v2"
HIST_KEY = "fc.history"


class _FailingStorage(MemoryStorage):
    """Reads work, every write fails (e.g. quota exceeded)."""

    def set(self, key: str, value: str) -> None:
        raise DashstateStorageError("quota exceeded")


class _BrokenStorage(MemoryStorage):
    """Every access fails with a backend-specific error."""

    def get(self, key: str) -> str | None:
        raise RuntimeError("database is locked")

    def set(self, key: str, value: str) -> None:
        raise RuntimeError("QuotaExceededError")


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def tick(self, seconds: int = 60) -> None:
        self.now += timedelta(seconds=seconds)


def _blob(storage: MemoryStorage, key: str) -> dict:
    raw = storage.get(key)
    assert raw is not None
    return json.loads(raw)


# ------------------------------------------------------------------
# Loading & migration
# ------------------------------------------------------------------


def test_empty_storage_loads_empty_without_writing() -> None:
    storage = MemoryStorage()

    store = FavoritesStore(storage)

    assert store.get_all() == []
    assert storage.get(FAV_KEY) is None


def test_unexpected_storage_errors_are_swallowed() -> None:
    store = HistoryStore(_BrokenStorage())
    seen: list[int] = []
    store.subscribe(lambda entries: seen.append(len(entries)))

    assert store.add({"id": "a"})
    assert store.remove("a")

    assert seen == [0, 1, 0]
    assert store.get_all() == []


def test_legacy_id_list_is_migrated_and_persisted() -> None:
    clock = _Clock()
    storage = MemoryStorage({FAV_KEY: json.dumps(["a", " b ", "a", ""])})

    store = FavoritesStore(storage, clock=clock)

    assert [f.id for f in store.get_all()] == ["a", "b"]
    assert store.get("a") == FavoriteEntry(id="a", title="a", kind="item", added_at=clock.now)
    blob = _blob(storage, FAV_KEY)
    assert blob["version"] == 2
    assert [e["id"] for e in blob["entries"]] == ["a", "b"]


def test_legacy_object_list_drops_invalid_items() -> None:
    storage = MemoryStorage(
        {
            FAV_KEY: json.dumps(
                [
                    {"id": "x", "title": "X", "kind": "asset", "addedAt": "2025-01-01T00:00:00Z"},
                    {"title": "no id"},
                    "stray",
                ]
            )
        }
    )

    store = FavoritesStore(storage)

    assert [f.id for f in store.get_all()] == ["x"]
    assert store.get("x").kind == "asset"  # type: ignore[union-attr]
    assert _blob(storage, FAV_KEY)["version"] == 2


def test_envelope_with_older_version_is_rewritten() -> None:
    storage = MemoryStorage({FAV_KEY: json.dumps({"version": 1, "entries": [{"id": "x", "title": "X"}]})})

    FavoritesStore(storage)

    assert _blob(storage, FAV_KEY)["version"] == 2


def test_malformed_blob_loads_empty() -> None:
    storage = MemoryStorage({FAV_KEY: "{not json", HIST_KEY: json.dumps(42)})

    assert FavoritesStore(storage).get_all() == []
    assert HistoryStore(storage).get_all() == []
    assert storage.get(FAV_KEY) == "{not json"


def test_round_trip_through_json_file(tmp_path: Path) -> None:
    path = tmp_path / "state" / "storage.json"
    store = FavoritesStore(JsonFileStorage(path))
    store.add({"id": "n1", "title": "Pump", "tags": ["water"]})

    reloaded = FavoritesStore(JsonFileStorage(path))

    assert reloaded.get_all() == store.get_all()
    assert reloaded.get("n1").tags == ("water",)  # type: ignore[union-attr]


# ------------------------------------------------------------------
# Favorites
# ------------------------------------------------------------------


def test_favorites_keep_insertion_order_and_unique_ids() -> None:
    store = FavoritesStore(MemoryStorage())

    assert store.add({"id": "a", "title": "A"})
    assert store.add({"id": "b", "title": "B"})
    assert not store.add({"id": "a", "title": "A again"})
    assert not store.add({"id": "", "title": "blank"})

    assert [f.id for f in store.get_all()] == ["a", "b"]
    assert store.get("a").title == "A"  # type: ignore[union-attr]
    assert len(store) == 2


def test_toggle_and_add_from_node() -> None:
    clock = _Clock()
    store = FavoritesStore(MemoryStorage(), clock=clock)
    node = CatalogNode(id="n1", title="Pump", kind="asset", categories=("utilities", "water"), tags=("p",))

    assert store.toggle("n1", node) is True
    favorite = store.get("n1")
    assert favorite is not None
    assert favorite.category == "utilities"
    assert favorite.tags == ("p",)
    assert favorite.added_at == clock.now

    assert store.toggle("n1") is False
    assert not store.is_favorite("n1")


def test_toggle_with_bare_id_adds_placeholder_favorite() -> None:
    clock = _Clock()
    store = FavoritesStore(MemoryStorage(), clock=clock)

    assert store.toggle("n7") is True
    favorite = store.get("n7")
    assert favorite is not None
    assert favorite.title == "n7"
    assert favorite.added_at == clock.now

    assert store.toggle("n7") is False
    assert store.toggle("   ") is False
    assert store.get_all() == []


def test_remove_and_clear() -> None:
    storage = MemoryStorage()
    store = FavoritesStore(storage)
    store.add({"id": "a"})
    store.add({"id": "b"})

    assert store.remove("a")
    assert not store.remove("a")
    store.clear()

    assert store.get_all() == []
    assert _blob(storage, FAV_KEY) == {"version": 2, "entries": []}


# ------------------------------------------------------------------
# Subscribers
# ------------------------------------------------------------------


def test_subscribe_is_called_immediately_and_on_change() -> None:
    store = FavoritesStore(MemoryStorage())
    seen: list[list[str]] = []

    unsubscribe = store.subscribe(lambda entries: seen.append([e.id for e in entries]))
    store.add({"id": "a"})
    unsubscribe()
    store.add({"id": "b"})

    assert seen == [[], ["a"]]


def test_failing_listener_does_not_block_others() -> None:
    store = FavoritesStore(MemoryStorage())
    seen: list[int] = []

    def broken(entries: list[FavoriteEntry]) -> None:
        raise RuntimeError("boom")

    store.subscribe(broken)
    store.subscribe(lambda entries: seen.append(len(entries)))
    store.add({"id": "a"})

    assert seen == [0, 1]


def test_failed_write_still_updates_memory_and_notifies() -> None:
    storage = _FailingStorage()
    store = FavoritesStore(storage)
    seen: list[int] = []
    store.subscribe(lambda entries: seen.append(len(entries)))

    assert store.add({"id": "a"})

    assert store.is_favorite("a")
    assert seen == [0, 1]
    assert storage.get(FAV_KEY) is None


# ------------------------------------------------------------------
# History
# ------------------------------------------------------------------


def test_history_moves_revisited_entry_to_front_and_restamps() -> None:
    clock = _Clock()
    store = HistoryStore(MemoryStorage(), clock=clock)

    store.add({"id": "a", "title": "A"})
    clock.tick()
    store.add({"id": "b", "title": "B"})
    clock.tick()
    store.add(HistoryEntry(id="a", title="A"))

    assert [h.id for h in store.get_all()] == ["a", "b"]
    assert store.get("a").viewed_at == clock.now  # type: ignore[union-attr]


def test_history_is_capped() -> None:
    store = HistoryStore(MemoryStorage(), limit=3)

    for i in range(5):
        store.add({"id": f"n{i}"})

    assert [h.id for h in store.get_all()] == ["n4", "n3", "n2"]


def test_history_default_cap_evicts_oldest() -> None:
    store = HistoryStore(MemoryStorage())

    for i in range(51):
        store.add({"id": f"n{i}"})

    ids = [h.id for h in store.get_all()]
    assert len(ids) == 50
    assert ids[0] == "n50"
    assert "n0" not in ids

    store.add({"id": "n10"})

    ids = [h.id for h in store.get_all()]
    assert len(ids) == 50
    assert ids[0] == "n10"
    assert ids.count("n10") == 1


def test_history_cap_applies_on_load() -> None:
    entries = [{"id": f"n{i}", "viewedAt": "2026-01-01T00:00:00Z"} for i in range(5)]
    storage = MemoryStorage({HIST_KEY: json.dumps({"version": 2, "entries": entries})})

    store = HistoryStore(storage, limit=2)

    assert [h.id for h in store.get_all()] == ["n0", "n1"]


def test_history_add_from_node() -> None:
    store = HistoryStore(MemoryStorage())

    store.add_from_node(CatalogNode(id="n1", kind="asset"))

    entry = store.get("n1")
    assert entry is not None
    assert entry.title == "n1"
    assert entry.kind == "asset"
    assert entry.action == "view"


def test_base_store_cannot_be_instantiated() -> None:
    with pytest.raises(TypeError):
        PersistentEntityStore(MemoryStorage())  # type: ignore[abstract]
