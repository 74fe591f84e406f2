"""Inbox listing and search."""

from __future__ import annotations

from typing import Optional

import httpx

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.application.use_cases.batch import open_backend
from mailbridge.domain.entities.mail import ThreadSummary
from mailbridge.infrastructure.settings import Settings


async def list_inbox(
    provider: ConnectionProvider,
    limit: int = 10,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[ThreadSummary]:
    backend = await open_backend(provider, client, settings)
    return await backend.list_inbox(limit)


async def search_inbox(
    provider: ConnectionProvider,
    query: str,
    limit: int = 10,
    include_done: bool = False,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[ThreadSummary]:
    """Search the inbox, or every folder including archived mail when ``include_done`` is set."""
    backend = await open_backend(provider, client, settings)
    return await backend.search(query, limit, include_done)
