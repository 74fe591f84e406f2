"""Contact lookup and name-to-address resolution.

Gmail searches the account's contacts through the People API; Graph uses
``/me/people``, which ranks by how often the user corresponds with someone.
"""

from __future__ import annotations

from typing import Optional

import httpx
from loguru import logger

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.application.ports.email_backend import EmailBackend
from mailbridge.application.use_cases.batch import open_backend
from mailbridge.domain.entities.mail import Contact
from mailbridge.infrastructure.settings import Settings


async def search_contacts(
    provider: ConnectionProvider,
    query: str,
    limit: int = 20,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[Contact]:
    backend = await open_backend(provider, client, settings)
    return await backend.search_contacts(query, limit)


async def _resolve(backend: EmailBackend, recipient: str) -> str:
    if "@" in recipient:
        return recipient
    matches = await backend.search_contacts(recipient, 1)
    if not matches:
        logger.warning(f"No contact found for {recipient!r}, using it as given")
        return recipient
    logger.debug(f"Resolved {recipient!r} to {matches[0].email}")
    return matches[0].email


async def resolve_recipient(
    provider: ConnectionProvider,
    recipient: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> str:
    """Turn a name into the best matching address. Addresses pass through unchanged."""
    if "@" in recipient:
        return recipient
    backend = await open_backend(provider, client, settings)
    return await _resolve(backend, recipient)


async def resolve_recipients(
    provider: ConnectionProvider,
    recipients: list[str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[str]:
    if all("@" in r for r in recipients):
        return list(recipients)
    backend = await open_backend(provider, client, settings)
    return [await _resolve(backend, r) for r in recipients]
