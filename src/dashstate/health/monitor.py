"""Fixed-interval health poller."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from dashstate._constants import HEALTH_POLL_INTERVAL_S, HEALTH_TIMEOUT_S
from dashstate._transport import JsonFetcher
from dashstate.health.normalizer import HealthNormalizer
from dashstate.models._base import utcnow
from dashstate.models.health import HealthLevel, HealthMetrics, HealthSnapshot
from dashstate.scheduling import AsyncioScheduler, Scheduler, TimerHandle
from dashstate.tasks import LatestTaskRunner

_logger = logging.getLogger(__name__)

_RUN_KEY = "health"


class HealthMonitor:
    """Poll a health endpoint and report normalized snapshots.

    ``start()`` runs a check immediately and then every ``interval``
    seconds; a check still running when the next tick fires is superseded.
    ``start()`` and ``stop()`` are idempotent. After ``stop()`` no further
    ticks fire and the in-flight check is cancelled.

    Fetch failures (including timeouts) are reported as an UNHEALTHY
    snapshot with ``error_rate = 1`` and passed to ``on_error``.
    """

    def __init__(
        self,
        fetcher: JsonFetcher,
        on_update: Callable[[HealthSnapshot], None],
        *,
        normalizer: HealthNormalizer | None = None,
        scheduler: Scheduler | None = None,
        interval: float = HEALTH_POLL_INTERVAL_S,
        timeout: float = HEALTH_TIMEOUT_S,
        on_error: Callable[[Exception], None] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._fetcher = fetcher
        self._on_update = on_update
        self._on_error = on_error
        self._normalizer = normalizer or HealthNormalizer()
        self._scheduler = scheduler or AsyncioScheduler()
        self._interval = interval
        self._timeout = timeout
        self._clock = clock
        self._runner = LatestTaskRunner()
        self._handle: TimerHandle | None = None
        self._running = False
        self._last: HealthSnapshot | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def last_snapshot(self) -> HealthSnapshot | None:
        return self._last

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        _logger.debug("Health monitor started (interval=%ss)", self._interval)
        self._tick()

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._runner.cancel(_RUN_KEY)
        _logger.debug("Health monitor stopped")

    def _tick(self) -> None:
        if not self._running:
            return
        self._handle = self._scheduler.call_later(self._interval, self._tick)
        self._runner.run(_RUN_KEY, self.check_once)

    async def check_once(self) -> HealthSnapshot:
        """Fetch, normalize and report one snapshot."""
        try:
            async with asyncio.timeout(self._timeout):
                raw = await self._fetcher()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            _logger.warning("Health check failed: %s", exc)
            snapshot = self._normalizer.failure_snapshot(
                f"Health check failed: {str(exc) or type(exc).__name__}",
                now=self._clock(),
                overall=HealthLevel.UNHEALTHY,
                metrics=HealthMetrics(error_rate=1.0, max_error_rate=1.0),
            )
            self._report(snapshot)
            if self._on_error is not None:
                try:
                    self._on_error(exc)
                except Exception:
                    _logger.debug("on_error callback failed", exc_info=True)
            return snapshot

        snapshot = self._normalizer.normalize(raw, now=self._clock())
        self._report(snapshot)
        return snapshot

    def _report(self, snapshot: HealthSnapshot) -> None:
        self._last = snapshot
        try:
            self._on_update(snapshot)
        except Exception:
            _logger.debug("on_update callback failed", exc_info=True)
