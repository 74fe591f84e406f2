"""List, download and attach files."""

from __future__ import annotations

import mimetypes
from typing import Optional

import httpx

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.application.use_cases.batch import guarded, open_backend
from mailbridge.domain.entities.mail import Attachment, AttachmentContent
from mailbridge.domain.entities.results import OperationResult
from mailbridge.infrastructure.settings import Settings

DEFAULT_MIME_TYPE = "application/octet-stream"


def guess_mime_type(filename: str) -> str:
    return mimetypes.guess_type(filename)[0] or DEFAULT_MIME_TYPE


async def list_attachments(
    provider: ConnectionProvider,
    thread_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[Attachment]:
    """Attachments of every message in the thread, in message order."""
    backend = await open_backend(provider, client, settings)
    return await backend.list_attachments(thread_id)


async def download_attachment(
    provider: ConnectionProvider,
    message_id: str,
    attachment_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> AttachmentContent:
    """Standard base64 content. A rejected token raises AuthError."""
    backend = await open_backend(provider, client, settings)
    return await backend.download_attachment(message_id, attachment_id)


async def add_attachment(
    provider: ConnectionProvider,
    draft_id: str,
    filename: str,
    data: bytes,
    mime_type: Optional[str] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> OperationResult:
    backend = await open_backend(provider, client, settings)
    mime_type = mime_type or guess_mime_type(filename)
    return await guarded(
        "add attachment", draft_id, lambda: backend.add_attachment(draft_id, filename, mime_type, data)
    )
