"""Health payload normalizer.

Turns heterogeneous backend health responses into a canonical
:class:`HealthSnapshot`. Accepted raw shapes:

* top-level status under ``status``, ``health`` or ``state``
* ``components`` as a list of ``{"name": ..., "status": ...}`` objects or as
  a map ``{"<name>": {"status": ...}}`` (a bare status string is accepted as
  a map value)
* ``metrics`` as a free-form numeric bag (camelCase or snake_case keys)
* ``timestamp`` / ``lastChecked`` as ISO text, epoch seconds or milliseconds
* optional ``version``, ``environment``, ``instance``, ``details``

:meth:`HealthNormalizer.normalize` never raises; failures produce a
snapshot describing the failure.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from dashstate._normalize import as_mapping, first_present, safe_float, safe_str, string_list
from dashstate._redact import redact_for_log
from dashstate.config import HealthThresholds
from dashstate.exceptions import DashstateParseError
from dashstate.models._base import parse_timestamp, utcnow
from dashstate.models.health import HealthComponent, HealthLevel, HealthMetrics, HealthSnapshot

_logger = logging.getLogger(__name__)

FALLBACK_COMPONENT = "health-normalizer"

_STATUS_SYNONYMS: dict[str, HealthLevel] = {
    # Healthy states
    "healthy": HealthLevel.HEALTHY,
    "ok": HealthLevel.HEALTHY,
    "up": HealthLevel.HEALTHY,
    "running": HealthLevel.HEALTHY,
    "success": HealthLevel.HEALTHY,
    "green": HealthLevel.HEALTHY,
    # Degraded states
    "degraded": HealthLevel.DEGRADED,
    "warning": HealthLevel.DEGRADED,
    "yellow": HealthLevel.DEGRADED,
    "slow": HealthLevel.DEGRADED,
    "unstable": HealthLevel.DEGRADED,
    # Unhealthy states
    "unhealthy": HealthLevel.UNHEALTHY,
    "down": HealthLevel.UNHEALTHY,
    "error": HealthLevel.UNHEALTHY,
    "failed": HealthLevel.UNHEALTHY,
    "red": HealthLevel.UNHEALTHY,
    "critical": HealthLevel.UNHEALTHY,
}

_DEFAULT_MESSAGES: dict[HealthLevel, str] = {
    HealthLevel.HEALTHY: "Component is operating normally",
    HealthLevel.DEGRADED: "Component performance is degraded",
    HealthLevel.UNHEALTHY: "Component is experiencing issues",
    HealthLevel.UNKNOWN: "Component status is unknown",
}

# Canonical metric name -> accepted payload keys.
_METRIC_KEYS: dict[str, tuple[str, ...]] = {
    "response_time": ("responseTime", "response_time", "latency", "latencyMs"),
    "error_rate": ("errorRate", "error_rate"),
    "uptime": ("uptime",),
    "memory_usage": ("memoryUsage", "memory_usage", "memory"),
    "cpu_usage": ("cpuUsage", "cpu_usage", "cpu"),
    "disk_usage": ("diskUsage", "disk_usage", "disk"),
}

# Metrics expressed as fractions; values above 1 are read as percentages.
_FRACTION_METRICS = frozenset({"error_rate", "memory_usage", "cpu_usage", "disk_usage"})


def map_level(value: Any) -> HealthLevel:
    """Map a free-text status to a :class:`HealthLevel` (case-insensitive, trimmed)."""
    if isinstance(value, HealthLevel):
        return value
    if not isinstance(value, str):
        return HealthLevel.UNKNOWN
    return _STATUS_SYNONYMS.get(value.strip().lower(), HealthLevel.UNKNOWN)


def _metric(data: Mapping[str, Any], name: str) -> float | None:
    value = safe_float(first_present(data, *_METRIC_KEYS[name]))
    if value is None or value < 0:
        return None
    if name in _FRACTION_METRICS and value > 1:
        value /= 100.0
    return value


@dataclass(frozen=True, slots=True)
class PayloadValidation:
    is_valid: bool
    errors: tuple[str, ...] = ()


@dataclass(slots=True)
class _ComponentMetrics:
    response_times: list[float]
    max_error_rate: float = 0.0
    max_memory_usage: float = 0.0
    max_cpu_usage: float = 0.0
    healthy: int = 0


class HealthNormalizer:
    """Normalize raw health payloads.

    Parameters
    ----------
    thresholds : HealthThresholds
        Metric limits that downgrade a HEALTHY overall status to DEGRADED.
    strict_validation : bool
        Make :meth:`validate_payload` require a top-level status field.
    """

    def __init__(self, thresholds: HealthThresholds | None = None, *, strict_validation: bool = False) -> None:
        self._thresholds = thresholds or HealthThresholds()
        self._strict = strict_validation

    @property
    def thresholds(self) -> HealthThresholds:
        return self._thresholds

    def normalize(self, raw: Any, *, now: datetime | None = None) -> HealthSnapshot:
        """Convert *raw* into a :class:`HealthSnapshot`.

        *now* replaces missing or unparsable timestamps; it defaults to the
        current time.
        """
        now = now or utcnow()
        try:
            return self._normalize(raw, now)
        except Exception as exc:
            _logger.warning("Health normalization failed: %s", exc)
            _logger.debug("Unnormalizable health payload: %s", redact_for_log(raw), exc_info=True)
            return self.failure_snapshot(f"Normalization failed: {exc}", now=now)

    def failure_snapshot(
        self,
        message: str,
        *,
        now: datetime | None = None,
        overall: HealthLevel = HealthLevel.UNKNOWN,
        metrics: HealthMetrics | None = None,
    ) -> HealthSnapshot:
        """Snapshot with a single UNHEALTHY component describing *message*."""
        now = now or utcnow()
        return HealthSnapshot(
            overall=overall,
            components=(
                HealthComponent(
                    name=FALLBACK_COMPONENT,
                    status=HealthLevel.UNHEALTHY,
                    message=message,
                    last_update=now,
                ),
            ),
            metrics=metrics or HealthMetrics(),
            last_checked=now,
            details={"error": message},
        )

    def validate_payload(self, raw: Any) -> PayloadValidation:
        errors: list[str] = []
        if raw is None:
            errors.append("payload is null")
        elif not isinstance(raw, Mapping):
            errors.append(f"payload must be an object, got {type(raw).__name__}")
        else:
            if self._strict and first_present(raw, "status", "health", "state") is None:
                errors.append("no status field found in payload")
            components = raw.get("components")
            if components is not None and not isinstance(components, (list, Mapping)):
                errors.append("components must be a list or an object")
            metrics = raw.get("metrics")
            if metrics is not None and not isinstance(metrics, Mapping):
                errors.append("metrics must be an object")
        return PayloadValidation(is_valid=not errors, errors=tuple(errors))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _normalize(self, raw: Any, now: datetime) -> HealthSnapshot:
        if not isinstance(raw, Mapping):
            raise DashstateParseError(f"health payload must be an object, got {type(raw).__name__}")

        components = tuple(self._component(item, now) for item in self._component_items(raw.get("components")))
        raw_metrics = as_mapping(raw.get("metrics"))
        metrics = self._metrics(raw_metrics, components)
        top_level = first_present(raw, "status", "health", "state")

        snapshot = HealthSnapshot(
            overall=self._overall(components, top_level, metrics),
            components=components,
            metrics=metrics,
            last_checked=parse_timestamp(first_present(raw, "timestamp", "lastChecked", "last_checked")) or now,
            version=safe_str(raw.get("version")),
            environment=safe_str(raw.get("environment")),
            instance=safe_str(raw.get("instance")),
            details=as_mapping(raw.get("details")),
        )
        _logger.debug(
            "Normalized health: overall=%s components=%d",
            snapshot.overall,
            len(snapshot.components),
        )
        return snapshot

    @staticmethod
    def _component_items(components: Any) -> list[dict[str, Any]]:
        """Bring list- and map-shaped components into one list of dicts."""
        if isinstance(components, Mapping):
            items: list[dict[str, Any]] = []
            for name, data in components.items():
                if isinstance(data, Mapping):
                    items.append({**data, "name": str(name)})
                else:
                    items.append({"name": str(name), "status": data})
            return items
        if isinstance(components, (list, tuple)):
            items = []
            for index, item in enumerate(components):
                if not isinstance(item, Mapping):
                    continue
                entry = dict(item)
                if safe_str(entry.get("name")) is None:
                    entry["name"] = f"component-{index}"
                items.append(entry)
            return items
        return []

    @staticmethod
    def _component(item: dict[str, Any], now: datetime) -> HealthComponent:
        status = map_level(first_present(item, "status", "health", "state"))
        details = item.get("details")
        if not isinstance(details, Mapping):
            details = {k: v for k, v in item.items() if k not in ("name", "status", "message", "dependencies")}
        return HealthComponent(
            name=str(item["name"]).strip(),
            status=status,
            message=safe_str(item.get("message")) or _DEFAULT_MESSAGES[status],
            last_update=parse_timestamp(first_present(item, "lastUpdate", "last_update", "timestamp")) or now,
            dependencies=tuple(string_list(item.get("dependencies"))),
            details=dict(details),
        )

    @staticmethod
    def _aggregate(components: tuple[HealthComponent, ...]) -> _ComponentMetrics:
        agg = _ComponentMetrics(response_times=[])
        for component in components:
            details = component.details
            response_time = _metric(details, "response_time")
            if response_time is not None:
                agg.response_times.append(response_time)
            agg.max_error_rate = max(agg.max_error_rate, _metric(details, "error_rate") or 0.0)
            agg.max_memory_usage = max(agg.max_memory_usage, _metric(details, "memory_usage") or 0.0)
            agg.max_cpu_usage = max(agg.max_cpu_usage, _metric(details, "cpu_usage") or 0.0)
            if component.status == HealthLevel.HEALTHY:
                agg.healthy += 1
        return agg

    def _metrics(self, raw_metrics: Mapping[str, Any], components: tuple[HealthComponent, ...]) -> HealthMetrics:
        agg = self._aggregate(components)
        avg_response = sum(agg.response_times) / len(agg.response_times) if agg.response_times else 0.0

        def base(name: str) -> float:
            return _metric(raw_metrics, name) or 0.0

        return HealthMetrics(
            response_time=avg_response or base("response_time"),
            error_rate=agg.max_error_rate or base("error_rate"),
            uptime=base("uptime"),
            memory_usage=agg.max_memory_usage or base("memory_usage"),
            cpu_usage=agg.max_cpu_usage or base("cpu_usage"),
            disk_usage=base("disk_usage"),
            avg_response_time=avg_response,
            max_error_rate=agg.max_error_rate,
            max_memory_usage=agg.max_memory_usage,
            max_cpu_usage=agg.max_cpu_usage,
            healthy_components=agg.healthy,
            total_components=len(components),
        )

    def _exceeds_thresholds(self, metrics: HealthMetrics) -> bool:
        limits = self._thresholds
        return (
            metrics.response_time > limits.response_time_ms
            or metrics.error_rate > limits.error_rate
            or metrics.memory_usage > limits.memory_usage
        )

    def _overall(self, components: tuple[HealthComponent, ...], top_level: Any, metrics: HealthMetrics) -> HealthLevel:
        statuses = {component.status for component in components}
        if HealthLevel.UNHEALTHY in statuses:
            return HealthLevel.UNHEALTHY
        if HealthLevel.DEGRADED in statuses:
            return HealthLevel.DEGRADED

        level = map_level(top_level)
        if level == HealthLevel.UNKNOWN and top_level is None and statuses == {HealthLevel.HEALTHY}:
            # No top-level status: all-healthy components speak for the system.
            level = HealthLevel.HEALTHY

        if level == HealthLevel.HEALTHY and self._exceeds_thresholds(metrics):
            return HealthLevel.DEGRADED
        return level


_default = HealthNormalizer()


def normalize_health(raw: Any, *, now: datetime | None = None) -> HealthSnapshot:
    """Normalize *raw* with default thresholds."""
    return _default.normalize(raw, now=now)
