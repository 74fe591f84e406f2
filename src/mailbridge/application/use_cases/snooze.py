"""Snooze threads through reminders stored on the Superhuman backend.

Neither Gmail nor Graph has a native snooze. A reminder records the thread,
its message ids and the time it should come back to the inbox. Reminders can
only be found by listing them, so unsnoozing scans the snoozed list for the
thread's reminder id.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Union

import httpx
from loguru import logger

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.domain.entities.credential import Credential
from mailbridge.domain.entities.mail import SnoozedThread
from mailbridge.domain.entities.results import SnoozeResult
from mailbridge.domain.errors import AuthError, MailBridgeError
from mailbridge.infrastructure.email.factory import BackendFactory
from mailbridge.infrastructure.http.rest import backend_request
from mailbridge.infrastructure.settings import Settings, get_settings

SNOOZE_PRESETS = ("tomorrow", "next-week", "weekend", "evening")

MONDAY, SATURDAY = 0, 5


def _at_nine(day: datetime) -> datetime:
    return day.replace(hour=9, minute=0, second=0, microsecond=0)


def _localize(wall: datetime, tz: Optional[tzinfo]) -> datetime:
    # naive wall-clock time gets the offset in effect on that date
    return wall.astimezone() if tz is None else wall.replace(tzinfo=tz)


def snooze_time_from_preset(preset: str, now: Optional[datetime] = None) -> datetime:
    """Resolve a preset against local wall-clock time.

    tomorrow: 9am tomorrow. next-week: 9am next Monday. weekend: 9am on the
    coming Saturday. evening: 6pm today, or tomorrow once 6pm has passed.

    Without ``now`` the system timezone is used, so a preset that crosses a
    DST change still lands on 9am (or 6pm) local time.
    """
    now = now or datetime.now()
    tz = now.tzinfo
    wall = now.replace(tzinfo=None)

    if preset == "tomorrow":
        target = _at_nine(wall + timedelta(days=1))
    elif preset == "next-week":
        days = (MONDAY - wall.weekday()) % 7 or 7
        target = _at_nine(wall + timedelta(days=days))
    elif preset == "weekend":
        days = (SATURDAY - wall.weekday()) % 7 or 7
        target = _at_nine(wall + timedelta(days=days))
    elif preset == "evening":
        evening = wall.replace(hour=18, minute=0, second=0, microsecond=0)
        target = evening if evening > wall else evening + timedelta(days=1)
    else:
        raise ValueError(f"Unknown snooze preset: {preset}")
    return _localize(target, tz)


def parse_snooze_time(value: str, now: Optional[datetime] = None) -> datetime:
    """Accept a preset name or an ISO-8601 timestamp."""
    if value in SNOOZE_PRESETS:
        return snooze_time_from_preset(value, now)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"Invalid snooze time: {value}") from e
    return parsed if parsed.tzinfo else parsed.astimezone()


def format_trigger(value: Union[datetime, str]) -> str:
    if isinstance(value, str):
        return value
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _now_iso() -> str:
    return format_trigger(datetime.now(timezone.utc))


def _identity_token(credential: Credential, action: str) -> str:
    if not credential.backend_identity_token:
        raise AuthError(f"Superhuman backend credentials required for {action} ({credential.email})")
    return credential.backend_identity_token


async def snooze_thread_direct(
    identity_token: str,
    thread_id: str,
    message_ids: list[str],
    snooze_until: Union[datetime, str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> SnoozeResult:
    reminder_id = str(uuid.uuid4())
    body = {
        "reminder": {
            "reminderId": reminder_id,
            "threadId": thread_id,
            "messageIds": message_ids,
            "triggerAt": format_trigger(snooze_until),
            "clientCreatedAt": _now_iso(),
        },
        "markDone": False,
        "moveToInbox": False,
        "poll": True,
    }
    try:
        result = await backend_request(
            identity_token, "/reminders/create", method="POST", json=body, client=client, settings=settings
        )
    except MailBridgeError as e:
        logger.error(f"Snooze failed for {thread_id}: {e}")
        return SnoozeResult.failed(str(e))

    if result is None:
        return SnoozeResult.failed("Authentication failed")
    logger.info(f"Snoozed thread {thread_id} until {body['reminder']['triggerAt']}")
    return SnoozeResult.ok(reminder_id=reminder_id)


async def unsnooze_thread_direct(
    identity_token: str,
    thread_id: str,
    reminder_id: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> SnoozeResult:
    body = {"reminderId": reminder_id, "threadId": thread_id, "moveToInbox": True, "poll": True}
    try:
        result = await backend_request(
            identity_token, "/reminders/cancel", method="POST", json=body, client=client, settings=settings
        )
    except MailBridgeError as e:
        logger.error(f"Unsnooze failed for {thread_id}: {e}")
        return SnoozeResult.failed(str(e))

    if result is None:
        return SnoozeResult.failed("Authentication failed")
    logger.info(f"Cancelled reminder {reminder_id} for thread {thread_id}")
    return SnoozeResult.ok(reminder_id=reminder_id)


async def list_snoozed_direct(
    identity_token: str,
    limit: int = 50,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[SnoozedThread]:
    result = await backend_request(
        identity_token,
        "/v3/userdata.getThreads",
        method="POST",
        json={"filter": {"type": "reminder"}, "offset": 0, "limit": limit},
        client=client,
        settings=settings,
    )
    if not result:
        return []

    snoozed = []
    for item in result.get("threadList") or []:
        reminder = (item.get("thread") or {}).get("reminder") or {}
        snoozed.append(
            SnoozedThread(
                id=reminder.get("threadId", ""),
                snooze_until=reminder.get("triggerAt"),
                reminder_id=reminder.get("reminderId"),
            )
        )
    return snoozed


async def snooze_thread_via_provider(
    provider: ConnectionProvider,
    thread_ids: list[str],
    snooze_until: Union[datetime, str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[SnoozeResult]:
    credential = await provider.get_token()
    identity_token = _identity_token(credential, "snooze")
    backend = BackendFactory.email(credential, client=client, settings=settings)

    results: list[SnoozeResult] = []
    for thread_id in thread_ids:
        try:
            message_ids = await backend.thread_message_ids(thread_id)
        except MailBridgeError as e:
            results.append(SnoozeResult.failed(str(e)))
            continue
        if not message_ids:
            results.append(SnoozeResult.failed("No messages found in thread"))
            continue
        results.append(
            await snooze_thread_direct(
                identity_token, thread_id, message_ids, snooze_until, client=client, settings=settings
            )
        )
    return results


async def unsnooze_thread_via_provider(
    provider: ConnectionProvider,
    thread_ids: list[str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[SnoozeResult]:
    credential = await provider.get_token()
    identity_token = _identity_token(credential, "unsnooze")
    settings = settings or get_settings()

    try:
        snoozed = await list_snoozed_direct(
            identity_token, settings.snooze_lookup_limit, client=client, settings=settings
        )
    except MailBridgeError as e:
        logger.error(f"Could not list snoozed threads: {e}")
        return [SnoozeResult.failed(str(e)) for _ in thread_ids]
    reminders = {s.id: s.reminder_id for s in snoozed if s.reminder_id}

    results: list[SnoozeResult] = []
    for thread_id in thread_ids:
        reminder_id = reminders.get(thread_id)
        if reminder_id is None:
            results.append(SnoozeResult.failed("Could not find reminder ID for thread"))
            continue
        results.append(
            await unsnooze_thread_direct(identity_token, thread_id, reminder_id, client=client, settings=settings)
        )
    return results


async def list_snoozed_via_provider(
    provider: ConnectionProvider,
    limit: int = 50,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> list[SnoozedThread]:
    credential = await provider.get_token()
    return await list_snoozed_direct(
        _identity_token(credential, "listing snoozed threads"), limit, client=client, settings=settings
    )
