"""Canonical health models produced by the health normalizer."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from dashstate.models._base import DashBaseModel, DashEnum, utcnow


class HealthLevel(DashEnum):
    """Canonical health level.

    Severity order (worst first): UNHEALTHY, DEGRADED, HEALTHY, UNKNOWN.
    """

    HEALTHY = "HEALTHY"
    DEGRADED = "DEGRADED"
    UNHEALTHY = "UNHEALTHY"
    UNKNOWN = "UNKNOWN"


class HealthComponent(DashBaseModel):
    name: str
    status: HealthLevel = HealthLevel.UNKNOWN
    message: str = ""
    last_update: datetime = Field(default_factory=utcnow)
    dependencies: tuple[str, ...] = ()
    details: dict[str, Any] = Field(default_factory=dict)


class HealthMetrics(DashBaseModel):
    """Consolidated metrics.

    The plain fields fall back to the payload's top-level metrics when no
    component reports a value; the ``avg_``/``max_`` fields are the
    component aggregates.
    """

    response_time: float = 0.0
    error_rate: float = 0.0
    uptime: float = 0.0
    memory_usage: float = 0.0
    cpu_usage: float = 0.0
    disk_usage: float = 0.0
    avg_response_time: float = 0.0
    max_error_rate: float = 0.0
    max_memory_usage: float = 0.0
    max_cpu_usage: float = 0.0
    healthy_components: int = 0
    total_components: int = 0


class HealthSnapshot(DashBaseModel):
    """Backend-agnostic health state.

    ``overall`` is derived from ``components`` and ``metrics`` only; the raw
    top-level status is consulted only when no component is degraded or
    unhealthy.
    """

    overall: HealthLevel = HealthLevel.UNKNOWN
    components: tuple[HealthComponent, ...] = ()
    metrics: HealthMetrics = Field(default_factory=HealthMetrics)
    last_checked: datetime = Field(default_factory=utcnow)
    version: str | None = None
    environment: str | None = None
    instance: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    def component(self, name: str) -> HealthComponent | None:
        for component in self.components:
            if component.name == name:
                return component
        return None
