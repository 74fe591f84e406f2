"""Gmail JSON -> domain entities, and outgoing messages -> raw RFC 822."""

from __future__ import annotations

import base64
from datetime import datetime, timezone
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import getaddresses, parseaddr
from typing import Any, Optional

from mailbridge.domain.entities.mail import (
    Address,
    Attachment,
    Contact,
    Label,
    Message,
    OutgoingMessage,
    ThreadSummary,
)


def parse_address(value: str) -> Address:
    """Parse ``Name <email>`` or a bare address."""
    name, email = parseaddr((value or "").strip())
    return Address(email=email, name=name)


def parse_address_list(value: str) -> list[Address]:
    """Parse an address header; quoted display names may contain commas."""
    if not value:
        return []
    return [Address(email=email, name=name) for name, email in getaddresses([value]) if email]


def _part_header(part: dict[str, Any], name: str) -> str:
    for h in part.get("headers") or []:
        if h.get("name", "").lower() == name.lower():
            return h.get("value") or ""
    return ""


def header(message: dict[str, Any], name: str) -> str:
    return _part_header(message.get("payload") or {}, name)


def _decode(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def extract_body(payload: dict[str, Any]) -> Optional[str]:
    # Prefer text/plain, fall back to text/html
    parts = [payload]
    plain: Optional[str] = None
    html: Optional[str] = None
    while parts:
        part = parts.pop(0)
        parts.extend(part.get("parts") or [])
        data = (part.get("body") or {}).get("data")
        if not data:
            continue
        mime = part.get("mimeType", "")
        if mime == "text/plain" and plain is None:
            plain = _decode(data)
        elif mime == "text/html" and html is None:
            html = _decode(data)
    return plain if plain is not None else html


def extract_attachments(thread_id: str, message: dict[str, Any]) -> list[Attachment]:
    """Every part with a filename and an attachmentId, depth first."""
    attachments: list[Attachment] = []
    parts = [(message.get("payload") or {})]
    while parts:
        part = parts.pop(0)
        parts[:0] = part.get("parts") or []
        body = part.get("body") or {}
        if not (part.get("filename") and body.get("attachmentId")):
            continue
        attachments.append(
            Attachment(
                id=body["attachmentId"],
                attachment_id=body["attachmentId"],
                name=part["filename"],
                mime_type=part.get("mimeType") or "application/octet-stream",
                message_id=message["id"],
                thread_id=thread_id,
                size=body.get("size") or 0,
                inline=_part_header(part, "Content-Disposition").lower().startswith("inline"),
            )
        )
    return attachments


def _internal_date(message: dict[str, Any]) -> str:
    millis = message.get("internalDate")
    if not millis:
        return ""
    return datetime.fromtimestamp(int(millis) / 1000, tz=timezone.utc).isoformat()


def thread_to_summary(thread: dict[str, Any]) -> Optional[ThreadSummary]:
    """Summarize a thread by its most recent message."""
    messages = thread.get("messages") or []
    if not messages:
        return None
    last = messages[-1]
    return ThreadSummary(
        id=thread["id"],
        subject=header(last, "Subject") or "(no subject)",
        sender=parse_address(header(last, "From")),
        date=header(last, "Date") or _internal_date(last),
        snippet=last.get("snippet", ""),
        label_ids=list(last.get("labelIds") or []),
        message_count=len(messages),
    )


def to_message(thread_id: str, message: dict[str, Any]) -> Message:
    return Message(
        id=message["id"],
        thread_id=thread_id,
        subject=header(message, "Subject") or "(no subject)",
        sender=parse_address(header(message, "From")),
        to=parse_address_list(header(message, "To")),
        cc=parse_address_list(header(message, "Cc")),
        date=header(message, "Date") or _internal_date(message),
        snippet=message.get("snippet", ""),
        body=extract_body(message.get("payload") or {}),
        internet_message_id=header(message, "Message-ID") or None,
        references=header(message, "References").split(),
        attachments=extract_attachments(thread_id, message),
    )


def to_label(raw: dict[str, Any]) -> Label:
    return Label(id=raw["id"], name=raw.get("name", raw["id"]), type=raw.get("type"))


def build_raw(message: OutgoingMessage, sender: Optional[str] = None) -> str:
    """Render an outgoing message as base64url RFC 822, as Gmail's ``raw`` field expects."""
    mime = EmailMessage()
    if sender:
        mime["From"] = sender
    mime["To"] = ", ".join(message.to)
    if message.cc:
        mime["Cc"] = ", ".join(message.cc)
    if message.bcc:
        mime["Bcc"] = ", ".join(message.bcc)
    mime["Subject"] = message.subject
    if message.in_reply_to:
        mime["In-Reply-To"] = message.in_reply_to
    if message.references:
        mime["References"] = " ".join(message.references)
    mime.set_content(message.body, subtype="html" if message.is_html else "plain")
    return encode_raw(mime)


def encode_raw(mime: EmailMessage) -> str:
    return base64.urlsafe_b64encode(mime.as_bytes()).decode("ascii")


def decode_raw(raw: str) -> EmailMessage:
    """Parse Gmail's base64url ``raw`` field back into a message."""
    data = base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4))
    return BytesParser(policy=policy.default).parsebytes(data)


def to_standard_base64(data: str) -> str:
    """Gmail returns attachment bodies as unpadded base64url."""
    return base64.b64encode(base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))).decode("ascii")


def to_contact(person: dict[str, Any]) -> Contact:
    emails = person.get("emailAddresses") or [{}]
    names = person.get("names") or [{}]
    return Contact(email=emails[0].get("value", ""), name=names[0].get("displayName", ""))
