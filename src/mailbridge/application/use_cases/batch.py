"""Shared plumbing for mutating use cases."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar

import httpx
from loguru import logger

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.application.ports.email_backend import EmailBackend
from mailbridge.domain.entities.results import BatchResult, OperationResult
from mailbridge.domain.errors import MailBridgeError
from mailbridge.infrastructure.email.factory import BackendFactory
from mailbridge.infrastructure.settings import Settings

R = TypeVar("R", bound=OperationResult)


async def open_backend(
    provider: ConnectionProvider,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> EmailBackend:
    """Resolve a credential and wrap it in the matching backend. AuthError propagates."""
    credential = await provider.get_token()
    return BackendFactory.email(credential, client=client, settings=settings)


async def guarded(
    action: str,
    target: str,
    op: Callable[[], Awaitable[R]],
    result_type: type[R] = OperationResult,
) -> R:
    """Run a backend mutation, turning backend failures into a failed result."""
    try:
        return await op()
    except MailBridgeError as e:
        logger.error(f"{action} failed for {target}: {e}")
        return result_type.failed(str(e))


async def run_batch(
    thread_ids: list[str],
    op: Callable[[str], Awaitable[OperationResult]],
) -> BatchResult:
    """Apply ``op`` to each thread in turn. One item's failure does not stop the rest."""
    batch = BatchResult()
    for thread_id in thread_ids:
        batch.results.append((thread_id, await op(thread_id)))
    if batch.failed:
        logger.warning(f"{batch.failed} of {len(thread_ids)} items failed")
    return batch
