"""dashstate - Application-state core for catalog/dashboard UIs."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("dashstate")
except PackageNotFoundError:
    __version__ = "0+local"
from dashstate.app import DashboardApp
from dashstate.config import DashstateConfig, HealthThresholds
from dashstate.entities.store import FavoritesStore, HistoryStore, PersistentEntityStore
from dashstate.exceptions import (
    DashstateConfigError,
    DashstateError,
    DashstateNotFoundError,
    DashstateParseError,
    DashstateStorageError,
    DashstateTransportError,
    DashstateValidationError,
)
from dashstate.health.monitor import HealthMonitor
from dashstate.health.normalizer import HealthNormalizer, normalize_health
from dashstate.models import (
    CatalogNode,
    FavoriteEntry,
    HealthComponent,
    HealthLevel,
    HealthMetrics,
    HealthSnapshot,
    HistoryEntry,
    NavigationEntry,
    NavigationStackState,
    SearchFilters,
    SearchResult,
    SortCriteria,
    SortDirection,
    SortField,
)
from dashstate.search.ranking import rank
from dashstate.state.actions import parse_action
from dashstate.state.app_state import AppState, initial_state
from dashstate.state.reducer import ReducerContext, reduce
from dashstate.state.store import StateStore
from dashstate.storage import JsonFileStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "__version__",
    "AppState",
    "CatalogNode",
    "DashboardApp",
    "DashstateConfig",
    "DashstateConfigError",
    "DashstateError",
    "DashstateNotFoundError",
    "DashstateParseError",
    "DashstateStorageError",
    "DashstateTransportError",
    "DashstateValidationError",
    "FavoriteEntry",
    "FavoritesStore",
    "HealthComponent",
    "HealthLevel",
    "HealthMetrics",
    "HealthMonitor",
    "HealthNormalizer",
    "HealthSnapshot",
    "HealthThresholds",
    "HistoryEntry",
    "HistoryStore",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "NavigationEntry",
    "NavigationStackState",
    "PersistentEntityStore",
    "ReducerContext",
    "SearchFilters",
    "SearchResult",
    "SortCriteria",
    "SortDirection",
    "SortField",
    "StateStore",
    "initial_state",
    "normalize_health",
    "parse_action",
    "rank",
    "reduce",
]
