from __future__ import annotations

from typing import Optional

import httpx

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.application.use_cases.batch import guarded, open_backend, run_batch
from mailbridge.domain.entities.results import BatchResult, OperationResult
from mailbridge.infrastructure.settings import Settings


async def mark_as_read(
    provider: ConnectionProvider,
    thread_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> OperationResult:
    """Gmail: remove UNREAD. Microsoft: set isRead on each message."""
    backend = await open_backend(provider, client, settings)
    return await guarded("mark read", thread_id, lambda: backend.mark_read(thread_id))


async def mark_as_unread(
    provider: ConnectionProvider,
    thread_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> OperationResult:
    backend = await open_backend(provider, client, settings)
    return await guarded("mark unread", thread_id, lambda: backend.mark_unread(thread_id))


async def mark_threads_read(
    provider: ConnectionProvider,
    thread_ids: list[str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> BatchResult:
    backend = await open_backend(provider, client, settings)
    return await run_batch(thread_ids, lambda t: guarded("mark read", t, lambda: backend.mark_read(t)))


async def mark_threads_unread(
    provider: ConnectionProvider,
    thread_ids: list[str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> BatchResult:
    backend = await open_backend(provider, client, settings)
    return await run_batch(thread_ids, lambda t: guarded("mark unread", t, lambda: backend.mark_unread(t)))
