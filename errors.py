"""Exception types raised at the remote index boundary.

Request cancellation is not represented here: a superseded request surfaces as
``asyncio.CancelledError`` and is never treated as a failure.
"""

from __future__ import annotations


class FavSearchError(Exception):
    """Base class for favsearch errors."""


class NetworkFailure(FavSearchError):
    """Non-2xx response, transport error, or malformed response body."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationMissing(FavSearchError):
    """No usable user key locally, or the key is not provisioned remotely."""


__all__ = ["FavSearchError", "NetworkFailure", "ConfigurationMissing"]
