"""
Exception types for the HavenMind synchronization layer.

Every failure is scoped to the single operation that raised it; nothing here
is fatal to the process.
"""

from __future__ import annotations

from typing import Optional


class SyncError(Exception):
    """Base exception class for all synchronization errors."""
    pass


class ConfigurationError(SyncError):
    """Raised when the API base URL is missing or settings cannot be loaded."""
    pass


class TransportError(SyncError):
    """Raised when the API answers with a non-success status or is unreachable.

    ``message`` is the raw response body so the UI can show it verbatim.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PayloadError(SyncError):
    """Raised when a successful response does not fit the expected record."""
    pass


class SoftUnavailable:
    """Advisory for a successful response that lacks an expected field.

    Not an exception: callers show ``message`` to the user instead of an error.
    """

    __slots__ = ("message",)

    def __init__(self, message: str):
        self.message = message

    def __eq__(self, other) -> bool:
        return isinstance(other, SoftUnavailable) and other.message == self.message

    def __repr__(self) -> str:
        return f"SoftUnavailable({self.message!r})"

    def __str__(self) -> str:
        return self.message


class NotAuthenticatedError(SyncError):
    """Raised when a write is attempted without an authenticated session."""
    pass
