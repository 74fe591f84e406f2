"""Calendar events and availability for Google and Microsoft accounts."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
from loguru import logger

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.application.ports.email_backend import CalendarBackend
from mailbridge.application.ports.live_client import LiveClient
from mailbridge.application.use_cases.accounts import switch_account
from mailbridge.application.use_cases.batch import guarded
from mailbridge.domain.entities.calendar import CalendarEvent, EventInput, FreeBusyResult
from mailbridge.domain.entities.results import CalendarResult
from mailbridge.domain.errors import MailBridgeError
from mailbridge.infrastructure.credentials.providers import LiveExtractionProvider
from mailbridge.infrastructure.email.factory import BackendFactory
from mailbridge.infrastructure.settings import Settings

DEFAULT_WINDOW = timedelta(days=7)


def _iso(value: datetime | str) -> str:
    if isinstance(value, str):
        return value
    if value.tzinfo is None:
        value = value.astimezone()
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def default_window(
    time_min: Optional[datetime | str] = None, time_max: Optional[datetime | str] = None
) -> tuple[str, str]:
    """Fill in now .. now+7d for whichever bound is missing."""
    now = datetime.now(timezone.utc)
    start = time_min if time_min is not None else now
    if time_max is None:
        base = start if isinstance(start, datetime) else datetime.fromisoformat(start.replace("Z", "+00:00"))
        time_max = base + DEFAULT_WINDOW
    return _iso(start), _iso(time_max)


async def _calendar(
    provider: ConnectionProvider,
    client: Optional[httpx.AsyncClient],
    settings: Optional[Settings],
) -> CalendarBackend:
    return BackendFactory.calendar(await provider.get_token(), client=client, settings=settings)


async def list_events(
    provider: ConnectionProvider,
    time_min: Optional[datetime | str] = None,
    time_max: Optional[datetime | str] = None,
    limit: int = 50,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[CalendarEvent]:
    start, end = default_window(time_min, time_max)
    calendar = await _calendar(provider, client, settings)
    return await calendar.list_events(start, end, limit)


async def create_event(
    provider: ConnectionProvider,
    event: EventInput,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> CalendarResult:
    if not event.summary or event.start is None or event.end is None:
        return CalendarResult.failed("An event needs a summary, a start and an end")
    calendar = await _calendar(provider, client, settings)
    return await guarded("create event", event.summary, lambda: calendar.create_event(event), CalendarResult)


async def update_event(
    provider: ConnectionProvider,
    event_id: str,
    updates: EventInput,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> CalendarResult:
    calendar = await _calendar(provider, client, settings)
    return await guarded("update event", event_id, lambda: calendar.update_event(event_id, updates), CalendarResult)


async def delete_event(
    provider: ConnectionProvider,
    event_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> CalendarResult:
    calendar = await _calendar(provider, client, settings)
    return await guarded("delete event", event_id, lambda: calendar.delete_event(event_id), CalendarResult)


async def get_free_busy(
    provider: ConnectionProvider,
    time_min: datetime | str,
    time_max: datetime | str,
    calendar_ids: Optional[list[str]] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> FreeBusyResult:
    calendar = await _calendar(provider, client, settings)
    return await calendar.get_free_busy(_iso(time_min), _iso(time_max), calendar_ids)


async def list_events_all_accounts(
    session: LiveClient,
    time_min: Optional[datetime | str] = None,
    time_max: Optional[datetime | str] = None,
    limit: int = 50,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[CalendarEvent]:
    """Events of every linked account, merged and sorted by start.

    Walks the accounts by switching the live client, then switches back to
    the account that was active before.
    """
    original = await session.current_account()
    provider = LiveExtractionProvider(session)
    events: list[CalendarEvent] = []

    try:
        for email in await session.list_linked_accounts():
            switched = await switch_account(session, email, settings=settings)
            if not switched.success:
                logger.warning(f"Skipping calendar for {email}: could not switch account")
                continue
            try:
                account_events = await list_events(
                    provider, time_min, time_max, limit, client=client, settings=settings
                )
            except MailBridgeError as e:
                logger.error(f"Listing events for {email} failed: {e}")
                continue
            events.extend(_tag(e, email) for e in account_events)
    finally:
        if original:
            await switch_account(session, original, settings=settings)

    return sorted(events, key=lambda e: e.start.sort_key)


def _tag(event: CalendarEvent, account: str) -> CalendarEvent:
    if event.account == account:
        return event
    return replace(event, account=account)
