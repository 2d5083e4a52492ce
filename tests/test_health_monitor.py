from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

import pytest

from dashstate.exceptions import DashstateTransportError
from dashstate.health.monitor import HealthMonitor
from dashstate.models import HealthLevel, HealthSnapshot
from dashstate.scheduling import ManualScheduler


def _now() -> datetime:
    return datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


async def _drain() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


class _Fetcher:
    def __init__(self, *payloads: Any) -> None:
        self._payloads = list(payloads)
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        payload = self._payloads[min(self.calls, len(self._payloads)) - 1]
        if isinstance(payload, Exception):
            raise payload
        return payload


def _monitor(fetcher: Any, scheduler: ManualScheduler, **kwargs: Any) -> tuple[HealthMonitor, list[HealthSnapshot]]:
    snapshots: list[HealthSnapshot] = []
    monitor = HealthMonitor(
        fetcher,
        snapshots.append,
        scheduler=scheduler,
        interval=5.0,
        clock=_now,
        **kwargs,
    )
    return monitor, snapshots


@pytest.mark.asyncio
async def test_start_checks_immediately_then_every_interval() -> None:
    scheduler = ManualScheduler()
    fetcher = _Fetcher({"status": "ok"}, {"status": "down"})
    monitor, snapshots = _monitor(fetcher, scheduler)

    monitor.start()
    await _drain()
    assert [s.overall for s in snapshots] == [HealthLevel.HEALTHY]

    scheduler.advance(4.0)
    await _drain()
    assert len(snapshots) == 1

    scheduler.advance(1.0)
    await _drain()
    assert [s.overall for s in snapshots] == [HealthLevel.HEALTHY, HealthLevel.UNHEALTHY]
    assert monitor.last_snapshot is snapshots[-1]

    monitor.stop()


@pytest.mark.asyncio
async def test_start_and_stop_are_idempotent() -> None:
    scheduler = ManualScheduler()
    fetcher = _Fetcher({"status": "ok"})
    monitor, snapshots = _monitor(fetcher, scheduler)

    monitor.start()
    monitor.start()
    await _drain()
    assert fetcher.calls == 1
    assert scheduler.pending == 1

    monitor.stop()
    monitor.stop()
    assert not monitor.running
    assert scheduler.pending == 0

    scheduler.advance(60.0)
    await _drain()
    assert fetcher.calls == 1
    assert len(snapshots) == 1


@pytest.mark.asyncio
async def test_stop_cancels_in_flight_check() -> None:
    scheduler = ManualScheduler()
    gate = asyncio.Event()

    async def slow() -> Any:
        await gate.wait()
        return {"status": "ok"}

    monitor, snapshots = _monitor(slow, scheduler)

    monitor.start()
    await _drain()
    monitor.stop()
    gate.set()
    await _drain()

    assert snapshots == []


@pytest.mark.asyncio
async def test_fetch_failure_reports_unhealthy_snapshot() -> None:
    scheduler = ManualScheduler()
    errors: list[Exception] = []
    failure = DashstateTransportError("HTTP 503", status_code=503)
    monitor, snapshots = _monitor(_Fetcher(failure), scheduler, on_error=errors.append)

    snapshot = await monitor.check_once()

    assert snapshot.overall == HealthLevel.UNHEALTHY
    assert snapshot.metrics.error_rate == 1.0
    assert snapshot.last_checked == _now()
    assert snapshot.components[0].status == HealthLevel.UNHEALTHY
    assert "HTTP 503" in snapshot.components[0].message
    assert snapshots == [snapshot]
    assert errors == [failure]


@pytest.mark.asyncio
async def test_fetch_timeout_is_a_failure() -> None:
    async def hang() -> Any:
        await asyncio.Event().wait()

    monitor, _ = _monitor(hang, ManualScheduler(), timeout=0.01)

    snapshot = await monitor.check_once()

    assert snapshot.overall == HealthLevel.UNHEALTHY
    assert "TimeoutError" in snapshot.components[0].message


@pytest.mark.asyncio
async def test_failing_update_callback_does_not_stop_polling() -> None:
    scheduler = ManualScheduler()
    fetcher = _Fetcher({"status": "ok"})

    def broken(snapshot: HealthSnapshot) -> None:
        raise RuntimeError("boom")

    monitor = HealthMonitor(fetcher, broken, scheduler=scheduler, interval=1.0)

    monitor.start()
    await _drain()
    scheduler.advance(1.0)
    await _drain()

    assert fetcher.calls == 2
    assert monitor.last_snapshot is not None
    monitor.stop()
