"""Stale-result policy.

Async runs (searches, node loads) are tagged with a request id when they
start. Only the result of the most recently started run may be folded into
state: "last request wins", not "first response wins".

This module contains no state access; the reducer passes in the ids.
"""

from __future__ import annotations

import uuid


def new_request_id() -> str:
    return uuid.uuid4().hex


def should_accept_result(*, recorded_request_id: str | None, incoming_request_id: str | None) -> bool:
    """Decide whether a completed run's result should be applied.

    Policy:
    - Results without a request id are always accepted.
    - With no recorded run, any result is accepted.
    - Otherwise the ids must match; a mismatch means a newer run superseded it.
    """
    if incoming_request_id is None or recorded_request_id is None:
        return True
    return incoming_request_id == recorded_request_id
