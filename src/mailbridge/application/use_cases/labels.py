"""Labels, folders and stars."""

from __future__ import annotations

from typing import Optional

import httpx

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.application.use_cases.batch import guarded, open_backend, run_batch
from mailbridge.domain.entities.mail import Label, ThreadRef
from mailbridge.domain.entities.results import BatchResult, OperationResult
from mailbridge.infrastructure.settings import Settings


async def list_labels(
    provider: ConnectionProvider,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[Label]:
    """Gmail labels or Microsoft mail folders."""
    backend = await open_backend(provider, client, settings)
    return await backend.list_labels()


async def get_thread_labels(
    provider: ConnectionProvider,
    thread_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[Label]:
    backend = await open_backend(provider, client, settings)
    return await backend.get_thread_labels(thread_id)


async def add_label(
    provider: ConnectionProvider,
    thread_id: str,
    label_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> OperationResult:
    backend = await open_backend(provider, client, settings)
    return await guarded("add label", thread_id, lambda: backend.add_label(thread_id, label_id))


async def remove_label(
    provider: ConnectionProvider,
    thread_id: str,
    label_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> OperationResult:
    backend = await open_backend(provider, client, settings)
    return await guarded("remove label", thread_id, lambda: backend.remove_label(thread_id, label_id))


async def star_thread(
    provider: ConnectionProvider,
    thread_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> OperationResult:
    """Gmail: add STARRED. Microsoft: flag every message of the conversation."""
    backend = await open_backend(provider, client, settings)
    return await guarded("star", thread_id, lambda: backend.star(thread_id))


async def unstar_thread(
    provider: ConnectionProvider,
    thread_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> OperationResult:
    backend = await open_backend(provider, client, settings)
    return await guarded("unstar", thread_id, lambda: backend.unstar(thread_id))


async def list_starred(
    provider: ConnectionProvider,
    limit: int = 50,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[ThreadRef]:
    backend = await open_backend(provider, client, settings)
    return await backend.list_starred(limit)


# Batch variants resolve the credential once and walk the ids sequentially


async def add_label_batch(
    provider: ConnectionProvider,
    thread_ids: list[str],
    label_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> BatchResult:
    backend = await open_backend(provider, client, settings)
    return await run_batch(
        thread_ids, lambda t: guarded("add label", t, lambda: backend.add_label(t, label_id))
    )


async def remove_label_batch(
    provider: ConnectionProvider,
    thread_ids: list[str],
    label_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> BatchResult:
    backend = await open_backend(provider, client, settings)
    return await run_batch(
        thread_ids, lambda t: guarded("remove label", t, lambda: backend.remove_label(t, label_id))
    )


async def star_threads(
    provider: ConnectionProvider,
    thread_ids: list[str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> BatchResult:
    backend = await open_backend(provider, client, settings)
    return await run_batch(thread_ids, lambda t: guarded("star", t, lambda: backend.star(t)))


async def unstar_threads(
    provider: ConnectionProvider,
    thread_ids: list[str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> BatchResult:
    backend = await open_backend(provider, client, settings)
    return await run_batch(thread_ids, lambda t: guarded("unstar", t, lambda: backend.unstar(t)))
