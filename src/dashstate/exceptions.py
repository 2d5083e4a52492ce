"""Custom exception hierarchy for dashstate.

These exceptions are raised inside components and caught at component
boundaries. Public operations convert them into fallback values, reported
results or ``state.errors`` entries instead of letting them escape.
"""

from __future__ import annotations


class DashstateError(Exception):
    """Base exception for all dashstate errors."""


class DashstateConfigError(DashstateError):
    """Invalid or missing configuration."""


class DashstateValidationError(DashstateError):
    """Malformed navigation, favorite or history entry."""

    def __init__(self, message: str, *, errors: list[str] | None = None) -> None:
        self.errors = list(errors or [])
        super().__init__(message)


class DashstateNotFoundError(DashstateError):
    """Unknown cache id or navigation entry."""


class DashstateTransportError(DashstateError):
    """Fetch failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class DashstateParseError(DashstateError):
    """Malformed persisted blob or raw backend payload."""


class DashstateStorageError(DashstateError):
    """Durable storage could not be read or written (e.g. quota exceeded)."""
