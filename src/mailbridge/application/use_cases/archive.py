"""Archive and delete threads.

Gmail archives by dropping INBOX and deletes by adding TRASH. Microsoft moves
every message of the conversation to the Archive or Deleted Items folder.
"""

from __future__ import annotations

from typing import Optional

import httpx

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.application.use_cases.batch import guarded, open_backend, run_batch
from mailbridge.domain.entities.results import BatchResult, OperationResult
from mailbridge.infrastructure.settings import Settings


async def archive_thread(
    provider: ConnectionProvider,
    thread_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> OperationResult:
    backend = await open_backend(provider, client, settings)
    return await guarded("archive", thread_id, lambda: backend.archive(thread_id))


async def delete_thread(
    provider: ConnectionProvider,
    thread_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> OperationResult:
    backend = await open_backend(provider, client, settings)
    return await guarded("delete", thread_id, lambda: backend.trash(thread_id))


async def archive_threads(
    provider: ConnectionProvider,
    thread_ids: list[str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> BatchResult:
    backend = await open_backend(provider, client, settings)
    return await run_batch(thread_ids, lambda t: guarded("archive", t, lambda: backend.archive(t)))


async def delete_threads(
    provider: ConnectionProvider,
    thread_ids: list[str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> BatchResult:
    backend = await open_backend(provider, client, settings)
    return await run_batch(thread_ids, lambda t: guarded("delete", t, lambda: backend.trash(t)))
