"""Navigation history models."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from dashstate._constants import NAVIGATION_MAX_SIZE
from dashstate.models._base import DashBaseModel, Timestamp, utcnow


class NavigationEntry(DashBaseModel):
    """One visited location.

    An entry is only valid with a non-empty ``id`` and ``view``; this is
    checked by :func:`dashstate.navigation.stack.validate_entry` rather than
    at construction so malformed entries can be reported instead of raised.
    """

    id: str = ""
    view: str = ""
    params: dict[str, Any] = Field(default_factory=dict)
    title: str = ""
    timestamp: Timestamp = Field(default_factory=utcnow)


class NavigationStackState(DashBaseModel):
    """Bounded history with a current pointer.

    ``current_index`` is ``-1`` iff ``history`` is empty, otherwise
    ``0 <= current_index < len(history)``.
    """

    history: tuple[NavigationEntry, ...] = ()
    current_index: int = -1
    max_size: int = NAVIGATION_MAX_SIZE
