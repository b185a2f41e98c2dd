from __future__ import annotations

from typing import Optional


class PinSyncError(Exception):
    """Base exception for client-side pin sync."""


class RemoteError(PinSyncError):
    """Non-success response or transport failure talking to the backend."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFound(RemoteError):
    """The backend answered 404."""


class CorruptLocalData(PinSyncError):
    """Device-local storage holds data that cannot be decoded."""
