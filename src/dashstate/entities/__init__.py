"""Persistent favorites and recently-viewed collections."""

from dashstate.entities.store import FavoritesStore, HistoryStore, PersistentEntityStore

__all__ = ["FavoritesStore", "HistoryStore", "PersistentEntityStore"]
