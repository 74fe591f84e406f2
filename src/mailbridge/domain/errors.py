"""Error taxonomy shared by every layer."""

from __future__ import annotations


class MailBridgeError(Exception):
    """Base class for all mailbridge errors."""


class AuthError(MailBridgeError):
    """No usable credential: missing, expired, or lacking a required sub-token."""


class NetworkError(MailBridgeError):
    """Transport failure or a non-401 HTTP error from a backend."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(NetworkError):
    """Thread, folder or message is absent."""


class UnsupportedOperationError(MailBridgeError):
    """The account's backend has no implementation of the operation."""
