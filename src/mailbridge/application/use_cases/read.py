from __future__ import annotations

from typing import Optional

import httpx

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.application.use_cases.batch import open_backend
from mailbridge.domain.entities.mail import Message
from mailbridge.infrastructure.settings import Settings


async def read_thread(
    provider: ConnectionProvider,
    thread_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[Message]:
    """All messages of a thread or conversation, oldest first."""
    backend = await open_backend(provider, client, settings)
    return await backend.read_thread(thread_id)
