from __future__ import annotations

import json
from pathlib import Path

import pytest

from dashstate.exceptions import DashstateStorageError
from dashstate.storage import JsonFileStorage, MemoryStorage


def test_memory_storage_basic_operations() -> None:
    storage = MemoryStorage({"a": "1"})

    storage.set("b", "2")
    storage.remove("a")
    storage.remove("missing")

    assert storage.get("a") is None
    assert storage.get("b") == "2"
    assert storage.keys() == ["b"]


def test_json_file_storage_missing_file_reads_empty(tmp_path: Path) -> None:
    storage = JsonFileStorage(tmp_path / "nope.json")

    assert storage.get("x") is None
    assert not storage.path.exists()


def test_json_file_storage_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "store.json"
    JsonFileStorage(path).set("k", '{"v": 1}')

    storage = JsonFileStorage(path)

    assert storage.get("k") == '{"v": 1}'
    assert json.loads(path.read_text(encoding="utf-8")) == {"k": '{"v": 1}'}
    assert not path.with_suffix(".json.tmp").exists()


def test_json_file_storage_remove(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    storage = JsonFileStorage(path)
    storage.set("a", "1")
    storage.set("b", "2")

    storage.remove("a")

    assert JsonFileStorage(path).get("a") is None
    assert JsonFileStorage(path).get("b") == "2"


def test_json_file_storage_ignores_invalid_content(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{broken", encoding="utf-8")

    storage = JsonFileStorage(path)

    assert storage.get("a") is None
    storage.set("a", "1")
    assert JsonFileStorage(path).get("a") == "1"


def test_json_file_storage_skips_non_string_values(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text(json.dumps({"a": "1", "b": 2}), encoding="utf-8")

    storage = JsonFileStorage(path)

    assert storage.get("a") == "1"
    assert storage.get("b") is None


def test_json_file_storage_write_failure_raises_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    storage = JsonFileStorage(blocker / "store.json")

    with pytest.raises(DashstateStorageError):
        storage.set("a", "1")

    assert storage.get("a") is None
