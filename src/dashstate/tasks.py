"""Cancellable async runs with "last request wins" semantics."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class LatestTaskRunner:
    """Run at most one task per key.

    Starting a run under a key cancels the previous run under that key. A
    superseded run never reaches its callbacks, even if it finished before
    the cancellation could take effect.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    def run(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        *,
        on_result: Callable[[T], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> asyncio.Task[None]:
        """Start ``factory()`` under *key*, superseding any earlier run."""
        self.cancel(key)
        task = asyncio.get_running_loop().create_task(self._execute(key, factory, on_result, on_error))
        self._tasks[key] = task
        return task

    def _is_current(self, key: str) -> bool:
        return self._tasks.get(key) is asyncio.current_task()

    async def _execute(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        on_result: Callable[[T], None] | None,
        on_error: Callable[[Exception], None] | None,
    ) -> None:
        try:
            try:
                result = await factory()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if not self._is_current(key):
                    _logger.debug("Discarding error of superseded run %s: %s", key, exc)
                    return
                if on_error is None:
                    _logger.warning("Run %s failed: %s", key, exc)
                else:
                    on_error(exc)
                return

            if not self._is_current(key):
                _logger.debug("Discarding result of superseded run %s", key)
                return
            if on_result is not None:
                on_result(result)
        finally:
            if self._is_current(key):
                del self._tasks[key]

    def is_running(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def cancel(self, key: str) -> bool:
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def cancel_all(self) -> None:
        for key in list(self._tasks):
            self.cancel(key)

    async def aclose(self) -> None:
        """Cancel every run and wait for them to unwind."""
        tasks = list(self._tasks.values())
        self.cancel_all()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
