"""Runtime configuration for dashstate."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from dashstate._constants import (
    ERROR_RATE_THRESHOLD,
    FAVORITES_STORAGE_KEY,
    HEALTH_POLL_INTERVAL_S,
    HEALTH_TIMEOUT_S,
    HISTORY_STORAGE_KEY,
    MAX_HISTORY,
    MEMORY_USAGE_THRESHOLD,
    NAVIGATION_MAX_SIZE,
    RESPONSE_TIME_THRESHOLD_MS,
    SEARCH_DEBOUNCE_S,
)
from dashstate.exceptions import DashstateConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class HealthThresholds:
    """Metric limits above which a HEALTHY overall status is downgraded.

    Parameters
    ----------
    response_time_ms : float
        Average response time in milliseconds.
    error_rate : float
        Error rate as a fraction (``0.1`` = 10 %).
    memory_usage : float
        Memory usage as a fraction (``0.8`` = 80 %).
    """

    response_time_ms: float = RESPONSE_TIME_THRESHOLD_MS
    error_rate: float = ERROR_RATE_THRESHOLD
    memory_usage: float = MEMORY_USAGE_THRESHOLD


@dataclasses.dataclass(frozen=True)
class DashstateConfig:
    """Library configuration.

    Parameters
    ----------
    history_limit : int
        Maximum number of recently-viewed entries kept by the history store.
    favorites_key : str
        Storage key of the favorites blob.
    history_key : str
        Storage key of the recently-viewed blob.
    navigation_max_size : int
        Maximum navigation stack length; oldest entries are dropped beyond it.
    navigation_prevent_duplicates : bool
        Skip a navigation push that equals the entry at the current position.
    search_debounce_seconds : float
        Quiet period after the last search input before a ranking pass runs.
    health_url : str or None
        Endpoint polled by the health monitor. ``None`` disables the default
        HTTP fetcher; a custom fetcher can still be injected.
    health_poll_interval : float
        Seconds between health checks.
    health_timeout : float
        Seconds before a single health fetch is abandoned.
    thresholds : HealthThresholds
        Metric limits used by the health normalizer.
    strict_health_validation : bool
        Require a top-level status field when validating raw health payloads.
    storage_path : str or None
        JSON file backing the key-value store. In-memory storage when unset.
    default_theme : str
        Initial ``settings.theme``.
    default_language : str
        Initial ``settings.language``.
    """

    history_limit: int = MAX_HISTORY
    favorites_key: str = FAVORITES_STORAGE_KEY
    history_key: str = HISTORY_STORAGE_KEY
    navigation_max_size: int = NAVIGATION_MAX_SIZE
    navigation_prevent_duplicates: bool = False
    search_debounce_seconds: float = SEARCH_DEBOUNCE_S
    health_url: str | None = None
    health_poll_interval: float = HEALTH_POLL_INTERVAL_S
    health_timeout: float = HEALTH_TIMEOUT_S
    thresholds: HealthThresholds = dataclasses.field(default_factory=HealthThresholds)
    strict_health_validation: bool = False
    storage_path: str | None = None
    default_theme: str = "light"
    default_language: str = "en"

    def __post_init__(self) -> None:
        if self.history_limit <= 0:
            raise DashstateConfigError(f"history_limit must be positive, got {self.history_limit}")
        if self.navigation_max_size <= 0:
            raise DashstateConfigError(f"navigation_max_size must be positive, got {self.navigation_max_size}")
        if self.health_poll_interval <= 0:
            raise DashstateConfigError(f"health_poll_interval must be positive, got {self.health_poll_interval}")
        if self.search_debounce_seconds < 0:
            raise DashstateConfigError("search_debounce_seconds must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> DashstateConfig:
        """Create configuration from environment variables.

        Reads optional ``DASHSTATE_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        DashstateConfig
            Populated configuration.
        """
        env = os.environ

        threshold_kwargs: dict[str, float] = {}
        _ENV_THRESHOLD_MAP = {
            "DASHSTATE_RESPONSE_TIME_THRESHOLD_MS": "response_time_ms",
            "DASHSTATE_ERROR_RATE_THRESHOLD": "error_rate",
            "DASHSTATE_MEMORY_USAGE_THRESHOLD": "memory_usage",
        }
        for env_key, field_name in _ENV_THRESHOLD_MAP.items():
            val = env.get(env_key)
            if val is not None:
                threshold_kwargs[field_name] = _parse_number(env_key, val, float)

        # Allow overriding thresholds via a nested dict
        threshold_overrides = overrides.pop("thresholds", None)
        if isinstance(threshold_overrides, dict):
            threshold_kwargs.update(threshold_overrides)
        elif isinstance(threshold_overrides, HealthThresholds):
            threshold_kwargs = dataclasses.asdict(threshold_overrides)

        thresholds = HealthThresholds(**threshold_kwargs) if threshold_kwargs else HealthThresholds()

        _ENV_STR_MAP = {
            "DASHSTATE_FAVORITES_KEY": "favorites_key",
            "DASHSTATE_HISTORY_KEY": "history_key",
            "DASHSTATE_HEALTH_URL": "health_url",
            "DASHSTATE_STORAGE_PATH": "storage_path",
            "DASHSTATE_THEME": "default_theme",
            "DASHSTATE_LANGUAGE": "default_language",
        }
        config_kwargs: dict[str, Any] = {"thresholds": thresholds}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_INT_MAP = {
            "DASHSTATE_HISTORY_LIMIT": "history_limit",
            "DASHSTATE_NAVIGATION_MAX_SIZE": "navigation_max_size",
        }
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _parse_number(env_key, val, int)

        _ENV_FLOAT_MAP = {
            "DASHSTATE_SEARCH_DEBOUNCE": "search_debounce_seconds",
            "DASHSTATE_HEALTH_POLL_INTERVAL": "health_poll_interval",
            "DASHSTATE_HEALTH_TIMEOUT": "health_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _parse_number(env_key, val, float)

        if "navigation_prevent_duplicates" not in overrides:
            config_kwargs["navigation_prevent_duplicates"] = _env_bool(
                env.get("DASHSTATE_NAVIGATION_PREVENT_DUPLICATES"),
                False,
            )
        if "strict_health_validation" not in overrides:
            config_kwargs["strict_health_validation"] = _env_bool(
                env.get("DASHSTATE_STRICT_HEALTH_VALIDATION"),
                False,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)


def _parse_number(env_key: str, value: str, kind: type[int] | type[float]) -> Any:
    try:
        return kind(value)
    except ValueError as exc:
        raise DashstateConfigError(f"{env_key} must be a number, got {value!r}") from exc
