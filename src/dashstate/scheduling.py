"""Timers behind a small clock abstraction.

Components never call ``loop.call_later`` directly; they take a
:class:`Scheduler` so tests can drive time with :class:`ManualScheduler`.
"""

from __future__ import annotations

import asyncio
import dataclasses
import heapq
import itertools
import logging
from collections.abc import Callable
from typing import Any, Protocol

_logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Structural clock interface (``asyncio`` loop or fake clock)."""

    def time(self) -> float:
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    Without an explicit *loop* the running loop is looked up on each call,
    so the scheduler can be created outside of a coroutine.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def time(self) -> float:
        return self._get_loop().time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self._get_loop().call_later(max(0.0, delay), callback)


@dataclasses.dataclass(order=True)
class _ManualTimer:
    when: float
    seq: int
    callback: Callable[[], None] = dataclasses.field(compare=False)
    cancelled: bool = dataclasses.field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Fake clock for tests.

    Time only moves through :meth:`advance`; timers due within the advanced
    window fire in due order (ties in scheduling order), including timers
    scheduled by callbacks during the advance.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._timers: list[_ManualTimer] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(self._now + max(0.0, delay), next(self._seq), callback)
        heapq.heappush(self._timers, timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for timer in self._timers if not timer.cancelled)

    def advance(self, seconds: float = 0.0) -> int:
        """Move the clock forward by *seconds*; returns the number of timers fired."""
        target = self._now + max(0.0, seconds)
        fired = 0
        while self._timers and self._timers[0].when <= target:
            timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._now = timer.when
            fired += 1
            try:
                timer.callback()
            except Exception:
                _logger.warning("Scheduled callback failed", exc_info=True)
        self._now = target
        return fired


class Debouncer:
    """Coalesce rapid calls into one callback after a quiet period.

    Every call resets the timer; only the arguments of the last call reach
    *callback*. :meth:`cancel` drops the pending call, :meth:`flush` runs
    it immediately.
    """

    def __init__(self, scheduler: Scheduler, delay: float, callback: Callable[..., Any]) -> None:
        self._scheduler = scheduler
        self._delay = delay
        self._callback = callback
        self._handle: TimerHandle | None = None
        self._args: tuple[Any, ...] = ()
        self._kwargs: dict[str, Any] = {}

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        self.cancel()
        self._args = args
        self._kwargs = kwargs
        self._handle = self._scheduler.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        args, kwargs = self._args, self._kwargs
        self._args, self._kwargs = (), {}
        self._callback(*args, **kwargs)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> bool:
        """Run the pending call now. Returns False when nothing was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True
