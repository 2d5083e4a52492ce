"""Durably-backed entity collections (favorites, recently viewed).

Each store owns one storage key holding a versioned JSON envelope::

    {"version": 2, "entries": [{...}, ...]}

Older blobs are migrated on load and written back in the current envelope:

* a flat list of id strings (the first favorites format)
* a flat list of entry objects (unversioned)

Loading never raises. Writes that fail are logged and swallowed; the
in-memory collection and subscribers still see the change.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import ValidationError

from dashstate._constants import ENTITY_BLOB_VERSION, FAVORITES_STORAGE_KEY, HISTORY_STORAGE_KEY, MAX_HISTORY
from dashstate.models._base import DashBaseModel, utcnow
from dashstate.models.catalog import CatalogNode
from dashstate.models.entries import FavoriteEntry, HistoryEntry
from dashstate.storage import KeyValueStorage

_logger = logging.getLogger(__name__)

EntryT = TypeVar("EntryT", FavoriteEntry, HistoryEntry)

Listener = Callable[[list[Any]], None]
Unsubscribe = Callable[[], None]


class PersistentEntityStore(ABC, Generic[EntryT]):
    """Ordered, id-unique collection persisted under a single storage key.

    Subclasses set :attr:`entry_model` and :attr:`default_key` and implement
    :meth:`_entry_from_id` for the legacy id-list migration.
    """

    entry_model: ClassVar[type[DashBaseModel]]
    default_key: ClassVar[str]

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._storage = storage
        self._key = key or self.default_key
        self._clock = clock
        self._entries: list[EntryT] = []
        self._listeners: list[Listener] = []
        self._load()

    @property
    def key(self) -> str:
        return self._key

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        try:
            raw = self._storage.get(self._key)
        except Exception as exc:
            _logger.warning("Could not read %s: %s", self._key, exc)
            return
        if not raw:
            return
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError):
            _logger.warning("Discarding malformed blob under %s", self._key)
            return

        if isinstance(parsed, dict):
            items = parsed.get("entries")
            self._entries = self._prepare(self._validate_items(items if isinstance(items, list) else []))
            if parsed.get("version") != ENTITY_BLOB_VERSION:
                self._save()
            return

        if isinstance(parsed, list):
            if all(isinstance(item, str) for item in parsed):
                now = self._clock()
                entries = [self._entry_from_id(item.strip(), now) for item in parsed if item.strip()]
                self._entries = self._prepare(self._dedupe(entries))
            else:
                self._entries = self._prepare(self._validate_items(parsed))
            _logger.info("Migrated legacy blob under %s (%d entries)", self._key, len(self._entries))
            self._save()
            return

        _logger.warning("Unexpected blob type under %s: %s", self._key, type(parsed).__name__)

    def _validate_items(self, items: list[Any]) -> list[EntryT]:
        entries: list[EntryT] = []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            try:
                entries.append(self.entry_model.model_validate(item))  # type: ignore[arg-type]
            except ValidationError as exc:
                _logger.debug("Dropping invalid entry under %s: %s", self._key, exc)
        return self._dedupe(entries)

    @staticmethod
    def _dedupe(entries: list[EntryT]) -> list[EntryT]:
        seen: set[str] = set()
        unique: list[EntryT] = []
        for entry in entries:
            if entry.id in seen:
                continue
            seen.add(entry.id)
            unique.append(entry)
        return unique

    def _prepare(self, entries: list[EntryT]) -> list[EntryT]:
        """Hook applied to loaded entries (e.g. capping)."""
        return entries

    def _save(self) -> None:
        blob = json.dumps(
            {
                "version": ENTITY_BLOB_VERSION,
                "entries": [entry.to_json_dict() for entry in self._entries],
            }
        )
        try:
            self._storage.set(self._key, blob)
        except Exception as exc:
            _logger.warning("Could not persist %s: %s", self._key, exc)

    @abstractmethod
    def _entry_from_id(self, entry_id: str, now: datetime) -> EntryT:
        """Build a placeholder entry for a bare id (legacy id lists, toggles)."""

    def _coerce(self, entry: EntryT | Mapping[str, Any]) -> EntryT | None:
        if isinstance(entry, self.entry_model):
            return entry  # type: ignore[return-value]
        try:
            return self.entry_model.model_validate(entry)  # type: ignore[return-value]
        except ValidationError as exc:
            _logger.debug("Rejected entry for %s: %s", self._key, exc)
            return None

    def _commit(self, entries: list[EntryT]) -> None:
        self._entries = entries
        self._save()
        self._notify()

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def _call(self, listener: Listener) -> None:
        try:
            listener(list(self._entries))
        except Exception:
            _logger.debug("Entity store listener raised", exc_info=True)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            self._call(listener)

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register *listener*; it is called immediately with the current entries."""
        self._listeners.append(listener)
        self._call(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Queries and mutations
    # ------------------------------------------------------------------

    def get_all(self) -> list[EntryT]:
        return list(self._entries)

    def get(self, entry_id: str) -> EntryT | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def __contains__(self, entry_id: object) -> bool:
        return any(entry.id == entry_id for entry in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def remove(self, entry_id: str) -> bool:
        remaining = [entry for entry in self._entries if entry.id != entry_id]
        if len(remaining) == len(self._entries):
            return False
        self._commit(remaining)
        return True

    def clear(self) -> None:
        self._commit([])


class FavoritesStore(PersistentEntityStore[FavoriteEntry]):
    """Favorites with set semantics by id, in insertion order."""

    entry_model = FavoriteEntry
    default_key = FAVORITES_STORAGE_KEY

    def _entry_from_id(self, entry_id: str, now: datetime) -> FavoriteEntry:
        return FavoriteEntry(id=entry_id, title=entry_id, kind="item", added_at=now)

    def is_favorite(self, entry_id: str) -> bool:
        return entry_id in self

    def add(self, entry: FavoriteEntry | Mapping[str, Any]) -> bool:
        """Add *entry* unless its id is already present. Returns True if added."""
        favorite = self._coerce(entry)
        if favorite is None or favorite.id in self:
            return False
        self._commit([*self._entries, favorite])
        return True

    def add_from_node(self, node: CatalogNode | Mapping[str, Any]) -> bool:
        if not isinstance(node, CatalogNode):
            try:
                node = CatalogNode.model_validate(node)
            except ValidationError as exc:
                _logger.debug("Cannot favorite invalid node: %s", exc)
                return False
        return self.add(
            FavoriteEntry(
                id=node.id,
                title=node.title or node.id,
                kind=node.kind,
                icon=node.icon,
                description=node.description,
                tags=node.tags or None,
                category=node.categories[0] if node.categories else None,
                added_at=self._clock(),
            )
        )

    def toggle(self, entry_id: str, node: CatalogNode | Mapping[str, Any] | None = None) -> bool:
        """Remove *entry_id* if favorited, else add it from *node* (or the bare id).

        Returns whether the id is a favorite afterwards.
        """
        if self.is_favorite(entry_id):
            self.remove(entry_id)
            return False
        if node is None:
            if not entry_id.strip():
                return False
            return self.add(self._entry_from_id(entry_id.strip(), self._clock()))
        return self.add_from_node(node)


class HistoryStore(PersistentEntityStore[HistoryEntry]):
    """Recently viewed entries, most recent first, capped at ``limit``."""

    entry_model = HistoryEntry
    default_key = HISTORY_STORAGE_KEY

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str | None = None,
        *,
        limit: int = MAX_HISTORY,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._limit = limit
        super().__init__(storage, key, clock=clock)

    @property
    def limit(self) -> int:
        return self._limit

    def _prepare(self, entries: list[HistoryEntry]) -> list[HistoryEntry]:
        return entries[: self._limit]

    def _entry_from_id(self, entry_id: str, now: datetime) -> HistoryEntry:
        return HistoryEntry(id=entry_id, title=entry_id, viewed_at=now)

    def add(self, entry: HistoryEntry | Mapping[str, Any]) -> bool:
        """Record a view of *entry* now; an existing id moves to the front."""
        viewed = self._coerce(entry)
        if viewed is None:
            return False
        viewed = viewed.model_copy(update={"viewed_at": self._clock()})
        rest = [e for e in self._entries if e.id != viewed.id]
        self._commit([viewed, *rest][: self._limit])
        return True

    def add_from_node(self, node: CatalogNode) -> bool:
        return self.add(HistoryEntry(id=node.id, title=node.title or node.id, kind=node.kind, icon=node.icon))
