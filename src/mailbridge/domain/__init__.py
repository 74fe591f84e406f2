"""Domain entities and errors."""

from mailbridge.domain.entities.credential import Credential
from mailbridge.domain.entities.mail import Address, Label, Message, OutgoingMessage, ThreadRef, ThreadSummary
from mailbridge.domain.entities.results import BatchResult, OperationResult
from mailbridge.domain.errors import (
    AuthError,
    MailBridgeError,
    NetworkError,
    NotFoundError,
    UnsupportedOperationError,
)

__all__ = [
    "Credential",
    "Address",
    "Label",
    "Message",
    "OutgoingMessage",
    "ThreadRef",
    "ThreadSummary",
    "OperationResult",
    "BatchResult",
    "MailBridgeError",
    "AuthError",
    "NetworkError",
    "NotFoundError",
    "UnsupportedOperationError",
]
