from __future__ import annotations

import pytest

from dashstate.config import DashstateConfig, HealthThresholds
from dashstate.exceptions import DashstateConfigError


def test_defaults() -> None:
    config = DashstateConfig()

    assert config.history_limit == 50
    assert config.favorites_key == "fc.favorites.v2"
    assert config.history_key == "fc.history"
    assert config.navigation_prevent_duplicates is False
    assert config.thresholds == HealthThresholds(response_time_ms=1000.0, error_rate=0.1, memory_usage=0.8)


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DASHSTATE_HISTORY_LIMIT", "10")
    monkeypatch.setenv("DASHSTATE_HEALTH_URL", "http://localhost:3000/api/health")
    monkeypatch.setenv("DASHSTATE_HEALTH_POLL_INTERVAL", "2.5")
    monkeypatch.setenv("DASHSTATE_NAVIGATION_PREVENT_DUPLICATES", "yes")
    monkeypatch.setenv("DASHSTATE_ERROR_RATE_THRESHOLD", "0.05")

    config = DashstateConfig.from_env()

    assert config.history_limit == 10
    assert config.health_url == "http://localhost:3000/api/health"
    assert config.health_poll_interval == 2.5
    assert config.navigation_prevent_duplicates is True
    assert config.thresholds.error_rate == 0.05
    assert config.thresholds.response_time_ms == 1000.0


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DASHSTATE_HISTORY_LIMIT", "10")
    monkeypatch.setenv("DASHSTATE_THEME", "dark")

    config = DashstateConfig.from_env(history_limit=5, default_theme="solarized", thresholds={"memory_usage": 0.9})

    assert config.history_limit == 5
    assert config.default_theme == "solarized"
    assert config.thresholds.memory_usage == 0.9


def test_unparsable_boolean_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DASHSTATE_STRICT_HEALTH_VALIDATION", "maybe")

    assert DashstateConfig.from_env().strict_health_validation is False


def test_non_numeric_env_value_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DASHSTATE_HISTORY_LIMIT", "lots")

    with pytest.raises(DashstateConfigError, match="DASHSTATE_HISTORY_LIMIT"):
        DashstateConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"history_limit": 0},
        {"navigation_max_size": -1},
        {"health_poll_interval": 0},
        {"search_debounce_seconds": -0.1},
    ],
)
def test_invalid_values_are_rejected(kwargs: dict[str, float]) -> None:
    with pytest.raises(DashstateConfigError):
        DashstateConfig(**kwargs)  # type: ignore[arg-type]
