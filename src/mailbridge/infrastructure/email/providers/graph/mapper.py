"""Microsoft Graph JSON -> domain entities."""

from __future__ import annotations

from typing import Any, Iterable

from mailbridge.domain.entities.mail import (
    Address,
    Attachment,
    Contact,
    Label,
    Message,
    OutgoingMessage,
    ThreadSummary,
)


def to_address(raw: dict[str, Any] | None) -> Address:
    email_address = (raw or {}).get("emailAddress") or {}
    return Address(email=email_address.get("address", ""), name=email_address.get("name", ""))


def to_recipients(emails: Iterable[str]) -> list[dict[str, Any]]:
    return [{"emailAddress": {"address": e}} for e in emails]


def group_conversations(messages: list[dict[str, Any]], limit: int) -> list[ThreadSummary]:
    """Collapse messages into one summary per conversationId, represented by the newest message.

    Conversations keep the order in which they first appear.
    """
    grouped: dict[str, list[dict[str, Any]]] = {}
    for message in messages:
        grouped.setdefault(message.get("conversationId", message.get("id", "")), []).append(message)

    summaries: list[ThreadSummary] = []
    for conversation_id, members in grouped.items():
        latest = max(members, key=lambda m: m.get("receivedDateTime") or "")
        summaries.append(
            ThreadSummary(
                id=conversation_id,
                subject=latest.get("subject") or "(no subject)",
                sender=to_address(latest.get("from")),
                date=latest.get("receivedDateTime", ""),
                snippet=latest.get("bodyPreview", ""),
                label_ids=[] if latest.get("isRead", True) else ["UNREAD"],
                message_count=len(members),
            )
        )
        if len(summaries) >= limit:
            break
    return summaries


def to_message(raw: dict[str, Any]) -> Message:
    body = (raw.get("body") or {}).get("content")
    return Message(
        id=raw["id"],
        thread_id=raw.get("conversationId", ""),
        subject=raw.get("subject") or "(no subject)",
        sender=to_address(raw.get("from")),
        to=[to_address(r) for r in raw.get("toRecipients") or []],
        cc=[to_address(r) for r in raw.get("ccRecipients") or []],
        date=raw.get("receivedDateTime", ""),
        snippet=raw.get("bodyPreview", ""),
        body=body,
        internet_message_id=raw.get("internetMessageId"),
    )


def to_attachment(raw: dict[str, Any], message_id: str, thread_id: str) -> Attachment:
    return Attachment(
        id=raw["id"],
        attachment_id=raw["id"],
        name=raw.get("name") or "attachment",
        mime_type=raw.get("contentType") or "application/octet-stream",
        message_id=message_id,
        thread_id=thread_id,
        size=raw.get("size") or 0,
        inline=bool(raw.get("isInline")),
    )


def to_contact(person: dict[str, Any]) -> Contact:
    scored = (person.get("scoredEmailAddresses") or [{}])[0]
    return Contact(
        email=scored.get("address") or person.get("userPrincipalName") or "",
        name=person.get("displayName") or "",
        score=scored.get("relevanceScore"),
    )


def to_label(raw: dict[str, Any]) -> Label:
    return Label(id=raw["id"], name=raw.get("displayName", raw["id"]), type="folder")


def to_graph_message(message: OutgoingMessage) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "subject": message.subject,
        "body": {"contentType": "HTML" if message.is_html else "Text", "content": message.body},
        "toRecipients": to_recipients(message.to),
    }
    if message.cc:
        payload["ccRecipients"] = to_recipients(message.cc)
    if message.bcc:
        payload["bccRecipients"] = to_recipients(message.bcc)
    # Graph only accepts X- prefixed custom headers, so In-Reply-To/References are dropped.
    # Replies keep their conversation through createReply instead.
    return payload
