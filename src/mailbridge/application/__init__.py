"""Application layer - ports and backend-agnostic use cases."""

from mailbridge.application.ports.connection_provider import AccountInfo, ConnectionProvider
from mailbridge.application.ports.email_backend import CalendarBackend, EmailBackend
from mailbridge.application.ports.live_client import LiveClient

__all__ = [
    "AccountInfo",
    "ConnectionProvider",
    "CalendarBackend",
    "EmailBackend",
    "LiveClient",
]
