"""Data models for dashstate."""

from dashstate.models._base import DashBaseModel, DashEnum, Timestamp, parse_timestamp, utcnow
from dashstate.models.catalog import CatalogNode
from dashstate.models.entries import FavoriteEntry, HistoryEntry
from dashstate.models.health import HealthComponent, HealthLevel, HealthMetrics, HealthSnapshot
from dashstate.models.navigation import NavigationEntry, NavigationStackState
from dashstate.models.search import (
    DateRange,
    ResultMetadata,
    SearchFilters,
    SearchResult,
    SortCriteria,
    SortDirection,
    SortField,
)

__all__ = [
    "CatalogNode",
    "DashBaseModel",
    "DashEnum",
    "DateRange",
    "FavoriteEntry",
    "HealthComponent",
    "HealthLevel",
    "HealthMetrics",
    "HealthSnapshot",
    "HistoryEntry",
    "NavigationEntry",
    "NavigationStackState",
    "ResultMetadata",
    "SearchFilters",
    "SearchResult",
    "SortCriteria",
    "SortDirection",
    "SortField",
    "Timestamp",
    "parse_timestamp",
    "utcnow",
]
