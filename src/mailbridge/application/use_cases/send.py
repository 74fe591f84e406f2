"""Send mail and manage drafts.

Immediate sends and drafts go through the account's own mail API. Scheduled
sends are Superhuman drafts carrying a ``scheduledFor`` time; the Superhuman
backend delivers them.
"""

from __future__ import annotations

import re
import secrets
import uuid
from datetime import datetime, timezone
from typing import Optional, Union

import httpx
from loguru import logger

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.application.use_cases.batch import guarded, open_backend
from mailbridge.application.use_cases.snooze import format_trigger
from mailbridge.domain.entities.credential import Credential
from mailbridge.domain.entities.mail import OutgoingMessage
from mailbridge.domain.entities.results import DraftResult, OperationResult, SendResult
from mailbridge.domain.errors import AuthError
from mailbridge.infrastructure.http.rest import backend_request
from mailbridge.infrastructure.settings import Settings

_TAG_RE = re.compile(r"<[^>]*>")


async def send_email(
    provider: ConnectionProvider,
    message: OutgoingMessage,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> SendResult:
    backend = await open_backend(provider, client, settings)
    return await guarded("send", ", ".join(message.to), lambda: backend.send(message), SendResult)


async def create_draft(
    provider: ConnectionProvider,
    message: OutgoingMessage,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> DraftResult:
    backend = await open_backend(provider, client, settings)
    return await guarded("create draft", message.subject, lambda: backend.create_draft(message), DraftResult)


async def update_draft(
    provider: ConnectionProvider,
    draft_id: str,
    message: OutgoingMessage,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> DraftResult:
    backend = await open_backend(provider, client, settings)
    return await guarded("update draft", draft_id, lambda: backend.update_draft(draft_id, message), DraftResult)


async def send_draft(
    provider: ConnectionProvider,
    draft_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> SendResult:
    backend = await open_backend(provider, client, settings)
    return await guarded("send draft", draft_id, lambda: backend.send_draft(draft_id), SendResult)


async def delete_draft(
    provider: ConnectionProvider,
    draft_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> OperationResult:
    backend = await open_backend(provider, client, settings)
    return await guarded("delete draft", draft_id, lambda: backend.delete_draft(draft_id))


def generate_draft_id() -> str:
    """Superhuman draft ids are ``draft00`` followed by 14 hex digits."""
    return f"draft00{secrets.token_hex(7)}"


def generate_rfc822_id() -> str:
    return f"<{secrets.token_hex(4)}.{uuid.uuid4()}@we.are.superhuman.com>"


def scheduled_draft(
    credential: Credential,
    message: OutgoingMessage,
    send_at: str,
    draft_id: str,
    thread_id: str,
) -> dict:
    """The ``writeMessage`` payload for a draft the backend sends at ``send_at``."""
    now = format_trigger(datetime.now(timezone.utc))
    local_part = credential.email.split("@")[0]
    value = {
        "id": draft_id,
        "threadId": thread_id,
        "action": "reply" if message.thread_id else "compose",
        "name": None,
        "from": f"{local_part} <{credential.email}>",
        "to": list(message.to),
        "cc": list(message.cc),
        "bcc": list(message.bcc),
        "subject": message.subject,
        "body": message.body,
        "snippet": _TAG_RE.sub("", message.body)[:100],
        "inReplyToRfc822Id": message.in_reply_to,
        "labelIds": ["DRAFT"],
        "clientCreatedAt": now,
        "date": now,
        "fingerprint": {"to": ",".join(message.to), "cc": ",".join(message.cc), "attachments": ""},
        "lastSessionId": str(uuid.uuid4()),
        "quotedContent": "",
        "quotedContentInlined": False,
        "references": list(message.references),
        "reminder": None,
        "rfc822Id": generate_rfc822_id(),
        "scheduledFor": send_at,
        "scheduledReplyInterruptedAt": None,
        "schemaVersion": 3,
        "totalComposeSeconds": 0,
    }
    path = f"users/{credential.backend_user_id}/threads/{thread_id}/messages/{draft_id}/draft"
    return {"writes": [{"path": path, "value": value}]}


async def schedule_send(
    provider: ConnectionProvider,
    message: OutgoingMessage,
    send_at: Union[datetime, str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> SendResult:
    credential = await provider.get_token()
    if not credential.backend_identity_token or not credential.backend_user_id:
        raise AuthError(f"Superhuman backend credentials required for scheduled send ({credential.email})")

    send_at_iso = format_trigger(send_at)
    draft_id = generate_draft_id()
    thread_id = message.thread_id or generate_draft_id()
    payload = scheduled_draft(credential, message, send_at_iso, draft_id, thread_id)

    async def write() -> SendResult:
        result = await backend_request(
            credential.backend_identity_token,
            "/v3/userdata.writeMessage",
            method="POST",
            json=payload,
            client=client,
            settings=settings,
        )
        if result is None:
            return SendResult.failed("Authentication failed")
        logger.info(f"Scheduled draft {draft_id} for {send_at_iso}")
        return SendResult.ok(message_id=draft_id, thread_id=thread_id, send_at=send_at_iso)

    return await guarded("schedule send", draft_id, write, SendResult)
