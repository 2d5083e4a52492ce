"""Pure navigation stack operations.

Every operation takes a :class:`NavigationStackState` and returns a new one
(wrapped in a :class:`StackResult`); the input is never modified. Failures
such as an out-of-range jump are reported through ``StackResult.error``
instead of being raised, and leave the state reference unchanged.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from dashstate._constants import MAX_ID_LENGTH, MAX_TITLE_LENGTH, NAVIGATION_BLOB_VERSION, NAVIGATION_MAX_SIZE
from dashstate.exceptions import DashstateNotFoundError, DashstateValidationError
from dashstate.models._base import parse_timestamp, utcnow
from dashstate.models.navigation import NavigationEntry, NavigationStackState

_logger = logging.getLogger(__name__)


class StackError(StrEnum):
    INVALID_ENTRY = "invalid_entry"
    OUT_OF_RANGE = "out_of_range"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class StackResult:
    """Outcome of a stack operation.

    ``changed`` is False when the operation was a no-op (including every
    failed operation); ``state`` is then the input state itself.
    """

    state: NavigationStackState
    changed: bool = True
    error: StackError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class EntryValidation:
    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class NavigationMetrics:
    total_entries: int
    back_steps: int
    forward_steps: int
    most_visited_views: tuple[str, ...]


def _unchanged(state: NavigationStackState, error: StackError | None = None) -> StackResult:
    return StackResult(state=state, changed=False, error=error)


def _with(state: NavigationStackState, history: tuple[NavigationEntry, ...], index: int) -> NavigationStackState:
    return state.model_copy(update={"history": history, "current_index": index})


# ------------------------------------------------------------------
# Construction & queries
# ------------------------------------------------------------------


def create_empty_stack(max_size: int = NAVIGATION_MAX_SIZE) -> NavigationStackState:
    return NavigationStackState(history=(), current_index=-1, max_size=max(1, max_size))


def create_entry(
    view: str,
    params: Mapping[str, Any] | None = None,
    title: str | None = None,
    *,
    now: datetime | None = None,
) -> NavigationEntry:
    """Create an entry with a generated id."""
    return NavigationEntry(
        id=f"nav_{uuid.uuid4().hex[:12]}",
        view=view,
        params=dict(params or {}),
        title=title or view,
        timestamp=now or utcnow(),
    )


def current(state: NavigationStackState) -> NavigationEntry | None:
    if 0 <= state.current_index < len(state.history):
        return state.history[state.current_index]
    return None


def previous(state: NavigationStackState) -> NavigationEntry | None:
    if 0 < state.current_index < len(state.history):
        return state.history[state.current_index - 1]
    return None


def next_entry(state: NavigationStackState) -> NavigationEntry | None:
    if 0 <= state.current_index < len(state.history) - 1:
        return state.history[state.current_index + 1]
    return None


def can_go_back(state: NavigationStackState) -> bool:
    return state.current_index > 0


def can_go_forward(state: NavigationStackState) -> bool:
    return state.current_index < len(state.history) - 1


def is_empty(state: NavigationStackState) -> bool:
    return not state.history


def is_full(state: NavigationStackState) -> bool:
    return len(state.history) >= state.max_size


def calculate_metrics(state: NavigationStackState, *, top: int = 5) -> NavigationMetrics:
    counts = Counter(entry.view for entry in state.history)
    return NavigationMetrics(
        total_entries=len(state.history),
        back_steps=max(0, state.current_index),
        forward_steps=max(0, len(state.history) - state.current_index - 1) if state.history else 0,
        most_visited_views=tuple(view for view, _ in counts.most_common(top)),
    )


# ------------------------------------------------------------------
# Validation & sanitization
# ------------------------------------------------------------------


def _clean_text(value: Any, limit: int | None = None) -> str:
    if value is None:
        return ""
    text = " ".join(str(value).split())
    if limit is not None and len(text) > limit:
        text = text[:limit].rstrip()
    return text


def validate_entry(entry: NavigationEntry) -> EntryValidation:
    errors: list[str] = []
    warnings: list[str] = []

    if not entry.id.strip():
        errors.append("entry must have a non-empty id")
    if not entry.view.strip():
        errors.append("entry must have a non-empty view")
    if entry.timestamp is None:
        errors.append("entry must have a valid timestamp")
    if not entry.title.strip():
        warnings.append("entry should have a descriptive title")
    if len(entry.id) > MAX_ID_LENGTH:
        warnings.append("entry id is unusually long")

    return EntryValidation(is_valid=not errors, errors=tuple(errors), warnings=tuple(warnings))


def sanitize_entry(entry: NavigationEntry | Mapping[str, Any], *, now: datetime | None = None) -> NavigationEntry:
    """Return a trimmed, clamped copy of *entry*.

    ``id`` and ``view`` are whitespace-trimmed, ``title`` is collapsed,
    clamped and defaults to the view, ``params`` must be a mapping and a
    missing or unparsable timestamp becomes *now*. The result may still be
    invalid (empty id/view); run :func:`validate_entry` on it.
    """
    if isinstance(entry, NavigationEntry):
        data: dict[str, Any] = {
            "id": entry.id,
            "view": entry.view,
            "params": entry.params,
            "title": entry.title,
            "timestamp": entry.timestamp,
        }
    elif isinstance(entry, Mapping):
        data = dict(entry)
    else:
        data = {}

    view = _clean_text(data.get("view"))
    params = data.get("params")
    return NavigationEntry(
        id=str(data.get("id") or "").strip(),
        view=view,
        params=dict(params) if isinstance(params, Mapping) else {},
        title=_clean_text(data.get("title"), MAX_TITLE_LENGTH) or view,
        timestamp=parse_timestamp(data.get("timestamp")) or now or utcnow(),
    )


def ensure_valid(entry: NavigationEntry | Mapping[str, Any], *, now: datetime | None = None) -> NavigationEntry:
    """Sanitize *entry* and raise :class:`DashstateValidationError` if it is still invalid."""
    clean = sanitize_entry(entry, now=now)
    validation = validate_entry(clean)
    if not validation.is_valid:
        raise DashstateValidationError(
            f"invalid navigation entry: {', '.join(validation.errors)}",
            errors=list(validation.errors),
        )
    return clean


def _prepare(entry: NavigationEntry | Mapping[str, Any], now: datetime | None) -> NavigationEntry | None:
    try:
        return ensure_valid(entry, now=now)
    except DashstateValidationError as exc:
        _logger.debug("Rejected navigation entry: %s", exc)
        return None


def _same_location(a: NavigationEntry, b: NavigationEntry) -> bool:
    return a.id == b.id and a.view == b.view and a.params == b.params


# ------------------------------------------------------------------
# Navigation operations
# ------------------------------------------------------------------


def push(
    state: NavigationStackState,
    entry: NavigationEntry | Mapping[str, Any],
    *,
    prevent_duplicates: bool = False,
    now: datetime | None = None,
) -> StackResult:
    """Append *entry* after the current position.

    Forward entries beyond the current position are discarded. Once the
    stack exceeds ``max_size`` the oldest entries are dropped.
    """
    clean = _prepare(entry, now)
    if clean is None:
        return _unchanged(state, StackError.INVALID_ENTRY)

    history = state.history[: state.current_index + 1]
    if prevent_duplicates and history and _same_location(history[-1], clean):
        return _unchanged(state)

    history = (*history, clean)
    if len(history) > state.max_size:
        history = history[len(history) - state.max_size :]
    return StackResult(state=_with(state, history, len(history) - 1))


def pop(state: NavigationStackState) -> StackResult:
    """Step back one entry; no-op at the start of the history."""
    if state.current_index <= 0:
        return _unchanged(state)
    return StackResult(state=_with(state, state.history, state.current_index - 1))


def forward(state: NavigationStackState) -> StackResult:
    """Step forward one entry; no-op at the tip.

    Only the pointer moves; the history is never re-pushed.
    """
    if not can_go_forward(state):
        return _unchanged(state)
    return StackResult(state=_with(state, state.history, state.current_index + 1))


def jump_to_index(state: NavigationStackState, index: int) -> StackResult:
    if not 0 <= index < len(state.history):
        _logger.debug("Navigation jump to %s out of range (size=%d)", index, len(state.history))
        return _unchanged(state, StackError.OUT_OF_RANGE)
    if index == state.current_index:
        return _unchanged(state)
    return StackResult(state=_with(state, state.history, index))


def index_of(state: NavigationStackState, entry_id: str) -> int:
    """Position of the first entry with *entry_id*.

    Raises
    ------
    DashstateNotFoundError
        If no entry has that id.
    """
    for index, entry in enumerate(state.history):
        if entry.id == entry_id:
            return index
    raise DashstateNotFoundError(f"no navigation entry with id {entry_id!r}")


def jump_to_entry(state: NavigationStackState, entry_id: str) -> StackResult:
    try:
        index = index_of(state, entry_id)
    except DashstateNotFoundError:
        return _unchanged(state, StackError.NOT_FOUND)
    return jump_to_index(state, index)


def replace(
    state: NavigationStackState,
    index: int,
    entry: NavigationEntry | Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> StackResult:
    """Overwrite the entry at *index* without moving the pointer."""
    if not 0 <= index < len(state.history):
        return _unchanged(state, StackError.OUT_OF_RANGE)
    clean = _prepare(entry, now)
    if clean is None:
        return _unchanged(state, StackError.INVALID_ENTRY)
    history = (*state.history[:index], clean, *state.history[index + 1 :])
    return StackResult(state=_with(state, history, state.current_index))


def remove_entry(state: NavigationStackState, entry_id: str) -> StackResult:
    """Remove the first entry with *entry_id*.

    Removing an entry before the pointer shifts it down by one; removing
    the current entry moves to the previous one, or to the following one
    when nothing precedes it.
    """
    try:
        position = index_of(state, entry_id)
    except DashstateNotFoundError:
        return _unchanged(state, StackError.NOT_FOUND)

    history = (*state.history[:position], *state.history[position + 1 :])
    index = state.current_index
    if not history:
        index = -1
    elif position < index or (position == index and index > 0):
        index -= 1
    return StackResult(state=_with(state, history, min(index, len(history) - 1)))


def clear_forward(state: NavigationStackState) -> StackResult:
    if not can_go_forward(state):
        return _unchanged(state)
    return StackResult(state=_with(state, state.history[: state.current_index + 1], state.current_index))


def clear(state: NavigationStackState) -> StackResult:
    if not state.history:
        return _unchanged(state)
    return StackResult(state=create_empty_stack(state.max_size))


# ------------------------------------------------------------------
# Persistence
# ------------------------------------------------------------------


def serialize(state: NavigationStackState) -> dict[str, Any]:
    """Convert the stack to a JSON-compatible structure."""
    return {
        "version": NAVIGATION_BLOB_VERSION,
        "history": [entry.model_dump(mode="json", by_alias=True) for entry in state.history],
        "currentIndex": state.current_index,
        "maxSize": state.max_size,
    }


def deserialize(data: Mapping[str, Any] | str | bytes | None, *, max_size: int | None = None) -> NavigationStackState:
    """Rebuild a stack from :func:`serialize` output (dict or JSON text).

    Each entry is re-validated; invalid ones are dropped and the pointer
    follows the surviving entries. Unreadable input yields an empty stack.
    """
    fallback = create_empty_stack(max_size or NAVIGATION_MAX_SIZE)
    try:
        if isinstance(data, (str, bytes)):
            data = json.loads(data)
        if not isinstance(data, Mapping):
            _logger.warning("Navigation blob is not an object; starting empty")
            return fallback

        raw_history = data.get("history")
        if not isinstance(raw_history, list):
            return fallback

        size = max_size or _positive_int(data.get("maxSize", data.get("max_size"))) or NAVIGATION_MAX_SIZE
        raw_index = _int_or(data.get("currentIndex", data.get("current_index", data.get("index"))), len(raw_history) - 1)
    except (TypeError, ValueError, RecursionError) as exc:
        _logger.warning("Failed to parse navigation blob: %s", exc)
        return fallback

    kept: list[NavigationEntry] = []
    index = -1
    for position, raw in enumerate(raw_history):
        entry = _load_entry(raw)
        if entry is None:
            continue
        kept.append(entry)
        if position <= raw_index:
            index = len(kept) - 1

    if not kept:
        return create_empty_stack(size)
    if len(kept) != len(raw_history):
        _logger.info("Dropped %d invalid navigation entries", len(raw_history) - len(kept))

    index = max(index, 0)
    if len(kept) > size:
        overflow = len(kept) - size
        kept = kept[overflow:]
        index = max(0, index - overflow)

    return NavigationStackState(history=tuple(kept), current_index=index, max_size=size)


def _load_entry(raw: Any) -> NavigationEntry | None:
    if not isinstance(raw, Mapping):
        return None
    if parse_timestamp(raw.get("timestamp")) is None:
        return None
    try:
        entry = NavigationEntry.model_validate(raw)
    except ValidationError:
        return None
    return _prepare(entry, None)


def _int_or(value: Any, default: int) -> int:
    if isinstance(value, bool) or value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _positive_int(value: Any) -> int | None:
    parsed = _int_or(value, 0)
    return parsed if parsed > 0 else None
