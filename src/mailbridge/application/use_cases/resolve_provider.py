"""Pick the best available credential source for an invocation.

Priority, stopping at the first match:

1. load the credential cache
2. the requested account, if it has a valid cached credential
3. the first valid cached credential in insertion order
4. ``None``: the caller has to open a live session itself
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Literal, Optional

from loguru import logger

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.application.ports.live_client import LiveClient
from mailbridge.infrastructure.credentials.providers import CachedCredentialProvider, LiveExtractionProvider
from mailbridge.infrastructure.credentials.store import CredentialStore

ResolutionKind = Literal["cached_account", "account_substituted", "cached_default", "live_required"]


@dataclass(frozen=True)
class ProviderCriteria:
    account: Optional[str] = None


@dataclass(frozen=True)
class ResolutionEvent:
    kind: ResolutionKind
    email: Optional[str] = None  # account the chosen provider serves
    requested: Optional[str] = None


EventCallback = Callable[[ResolutionEvent], None]


def _emit(on_event: Optional[EventCallback], event: ResolutionEvent) -> None:
    if on_event is not None:
        on_event(event)


def resolve_provider(
    criteria: Optional[ProviderCriteria] = None,
    store: Optional[CredentialStore] = None,
    on_event: Optional[EventCallback] = None,
) -> Optional[CachedCredentialProvider]:
    """Return a cache-backed provider, or None when live extraction is required."""
    criteria = criteria or ProviderCriteria()
    store = store if store is not None else CredentialStore()
    store.load()

    requested = criteria.account
    if requested and store.has_valid(requested):
        logger.debug(f"Using cached credential for {requested}")
        _emit(on_event, ResolutionEvent("cached_account", email=requested, requested=requested))
        return CachedCredentialProvider(requested, store=store)

    fallback = store.first_valid_email()
    if fallback is not None:
        if requested:
            logger.warning(f"No valid cached credential for {requested}, using {fallback}")
            _emit(on_event, ResolutionEvent("account_substituted", email=fallback, requested=requested))
        else:
            _emit(on_event, ResolutionEvent("cached_default", email=fallback))
        return CachedCredentialProvider(fallback, store=store)

    logger.info("No valid cached credentials, live extraction required")
    _emit(on_event, ResolutionEvent("live_required", requested=requested))
    return None


async def resolve_provider_with_fallback(
    criteria: Optional[ProviderCriteria],
    connect_live: Callable[[], Awaitable[LiveClient]],
    store: Optional[CredentialStore] = None,
    on_event: Optional[EventCallback] = None,
) -> ConnectionProvider:
    """Like resolve_provider, but opens a live session when the cache has nothing usable.

    Credentials extracted from the live session are written back to the store.
    """
    store = store if store is not None else CredentialStore()
    provider = resolve_provider(criteria, store=store, on_event=on_event)
    if provider is not None:
        return provider

    session = await connect_live()
    return LiveExtractionProvider(session, store=store)
