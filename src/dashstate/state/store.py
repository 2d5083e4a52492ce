"""Deterministic state store.

The only component holding the *current* :class:`AppState`. It re-invokes
the pure reducer on every dispatch and notifies subscribers when the
snapshot reference changes.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from dashstate.config import DashstateConfig
from dashstate.state.actions import BaseAction, parse_action
from dashstate.state.app_state import AppState, initial_state
from dashstate.state.reducer import ReducerContext, reduce

_logger = logging.getLogger(__name__)

StateListener = Callable[[AppState], None]

# Logical time before the first action when no clock is injected.
_ORIGIN = datetime(1970, 1, 1, tzinfo=UTC)


class StateStore:
    """Holds the current snapshot and folds actions through :func:`reduce`.

    Dispatches are totally ordered: a dispatch issued from inside a listener
    is queued and applied after the current one has finished notifying.
    Given the same initial state and the same action sequence the store
    produces equal snapshots.

    Raw actions without an ``at`` are stamped by *clock* when one is given;
    otherwise they take the time of the previously applied action, so a
    replayed log yields the same snapshots every time.
    """

    def __init__(
        self,
        state: AppState | None = None,
        *,
        config: DashstateConfig | None = None,
        context: ReducerContext | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        config = config or DashstateConfig()
        self._state = state if state is not None else initial_state(config)
        self._context = context or ReducerContext.from_config(config)
        self._listeners: list[StateListener] = []
        self._queue: deque[BaseAction] = deque()
        self._dispatching = False
        self._clock = clock
        self._last_at = _ORIGIN

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, action: BaseAction) -> AppState:
        """Apply *action* (and anything queued meanwhile); return the new state."""
        self._queue.append(action)
        if self._dispatching:
            return self._state

        self._dispatching = True
        try:
            while self._queue:
                current = self._queue.popleft()
                previous = self._state
                self._last_at = max(self._last_at, current.at)
                self._state = reduce(previous, current, self._context)
                if self._state is not previous:
                    self._notify()
        finally:
            self._dispatching = False
        return self._state

    def dispatch_raw(self, raw: Mapping[str, Any]) -> AppState:
        """Parse a ``{"type", "payload"}`` mapping and dispatch it.

        Unknown or invalid actions leave the state untouched.
        """
        action = self.parse(raw)
        if action is None:
            return self._state
        return self.dispatch(action)

    def parse(self, raw: Mapping[str, Any]) -> BaseAction | None:
        """Build an action from *raw*, stamping a missing ``at`` as described above."""
        stamp = self._clock() if self._clock is not None else self._last_at
        return parse_action(raw, at=stamp)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener* for state changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        state = self._state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                _logger.debug("State listener failed", exc_info=True)
