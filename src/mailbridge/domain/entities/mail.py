from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Address:
    email: str
    name: str = ""


@dataclass(frozen=True)
class Label:
    # A Gmail label or a Microsoft mail folder
    id: str
    name: str
    type: Optional[str] = None


@dataclass(frozen=True)
class ThreadRef:
    id: str


@dataclass(frozen=True)
class ThreadSummary:
    # One Gmail thread or one Graph conversation
    id: str
    subject: str
    sender: Address
    date: str
    snippet: str
    label_ids: list[str] = field(default_factory=list)
    message_count: int = 1


@dataclass(frozen=True)
class Message:
    id: str
    thread_id: str
    subject: str
    sender: Address
    to: list[Address]
    cc: list[Address]
    date: str
    snippet: str
    body: Optional[str] = None
    internet_message_id: Optional[str] = None  # RFC 822 Message-ID
    references: list[str] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)


@dataclass(frozen=True)
class Attachment:
    # attachment_id is what the download endpoint expects
    id: str
    attachment_id: str
    name: str
    mime_type: str
    message_id: str
    thread_id: str
    size: int = 0
    inline: bool = False

    @property
    def extension(self) -> str:
        _, dot, ext = self.name.rpartition(".")
        return ext.lower() if dot else ""


@dataclass(frozen=True)
class AttachmentContent:
    """Standard (not URL-safe) base64 payload of a downloaded attachment."""

    data: str
    size: int

    def decode(self) -> bytes:
        return base64.b64decode(self.data + "=" * (-len(self.data) % 4))


@dataclass(frozen=True)
class Contact:
    email: str
    name: str = ""
    score: Optional[float] = None


@dataclass(frozen=True)
class OutgoingMessage:
    to: list[str]
    subject: str
    body: str
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    is_html: bool = True
    thread_id: Optional[str] = None
    in_reply_to: Optional[str] = None
    references: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SnoozedThread:
    id: str
    snooze_until: Optional[str] = None
    reminder_id: Optional[str] = None
