"""Key-value blob storage used by the persistent entity stores.

Values are opaque strings (JSON text in practice), mirroring the
browser-style ``localStorage`` contract the dashboard was built around.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Protocol

from dashstate.exceptions import DashstateStorageError

_logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Structural storage interface.

    ``get`` returns ``None`` for absent keys. ``set`` and ``remove`` raise
    :class:`DashstateStorageError` when the write cannot be completed.
    """

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStorage:
    """Process-local storage; the default when no storage path is configured."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStorage:
    """All keys kept in one JSON object on disk.

    The file is read lazily on first access and rewritten atomically
    (temp file + ``os.replace``) on every write.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._data: dict[str, str] | None = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if self._data is not None:
            return self._data
        data: dict[str, str] = {}
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            text = ""
        except OSError as exc:
            _logger.warning("Could not read storage file %s: %s", self._path, exc)
            text = ""
        if text.strip():
            try:
                raw = json.loads(text)
            except json.JSONDecodeError:
                _logger.warning("Storage file %s is not valid JSON; starting empty", self._path)
                raw = {}
            if isinstance(raw, dict):
                data = {str(k): v for k, v in raw.items() if isinstance(v, str)}
        self._data = data
        return data

    def _flush(self, data: dict[str, str]) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
            os.replace(tmp, self._path)
        except OSError as exc:
            raise DashstateStorageError(f"Could not write storage file {self._path}: {exc}") from exc

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = dict(self._load())
            data[key] = value
            self._flush(data)
            self._data = data

    def remove(self, key: str) -> None:
        with self._lock:
            data = dict(self._load())
            if data.pop(key, None) is None:
                return
            self._flush(data)
            self._data = data
