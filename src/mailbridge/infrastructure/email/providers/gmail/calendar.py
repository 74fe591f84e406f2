"""Google Calendar v3 implementation of CalendarBackend (primary calendar)."""

from __future__ import annotations

from typing import Any, Optional

import httpx
from loguru import logger

from mailbridge.application.ports.email_backend import CalendarBackend
from mailbridge.domain.entities.calendar import (
    Attendee,
    BusySlot,
    CalendarEvent,
    EventInput,
    EventTime,
    FreeBusyResult,
    free_slots,
)
from mailbridge.domain.entities.credential import Credential
from mailbridge.domain.entities.results import CalendarResult
from mailbridge.domain.errors import AuthError
from mailbridge.infrastructure.http.rest import calendar_request
from mailbridge.infrastructure.settings import Settings, get_settings


def _to_time(raw: dict[str, Any] | None) -> EventTime:
    raw = raw or {}
    return EventTime(date=raw.get("date"), date_time=raw.get("dateTime"), time_zone=raw.get("timeZone"))


def _from_time(value: EventTime) -> dict[str, Any]:
    if value.date:
        return {"date": value.date}
    payload: dict[str, Any] = {"dateTime": value.date_time}
    if value.time_zone:
        payload["timeZone"] = value.time_zone
    return payload


def to_event(raw: dict[str, Any], account: Optional[str] = None) -> CalendarEvent:
    start = _to_time(raw.get("start"))
    return CalendarEvent(
        id=raw["id"],
        summary=raw.get("summary", "(no title)"),
        start=start,
        end=_to_time(raw.get("end")),
        attendees=[
            Attendee(
                email=a.get("email", ""),
                display_name=a.get("displayName", ""),
                response_status=a.get("responseStatus", "needsAction"),
                organizer=bool(a.get("organizer")),
            )
            for a in raw.get("attendees") or []
        ],
        description=raw.get("description"),
        location=raw.get("location"),
        all_day=start.date is not None,
        status=raw.get("status", "confirmed"),
        html_link=raw.get("htmlLink"),
        provider="google",
        account=account,
    )


def to_payload(event: EventInput) -> dict[str, Any]:
    """Only the fields that are set, so the same payload works for PATCH."""
    payload: dict[str, Any] = {}
    if event.summary is not None:
        payload["summary"] = event.summary
    if event.start is not None:
        payload["start"] = _from_time(event.start)
    if event.end is not None:
        payload["end"] = _from_time(event.end)
    if event.description is not None:
        payload["description"] = event.description
    if event.location is not None:
        payload["location"] = event.location
    if event.attendees is not None:
        payload["attendees"] = [{"email": a.email, "displayName": a.display_name} for a in event.attendees]
    if event.recurrence is not None:
        payload["recurrence"] = event.recurrence
    return payload


class GoogleCalendarBackend(CalendarBackend):
    name = "google-calendar"

    def __init__(
        self,
        credential: Credential,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
        calendar_id: str = "primary",
    ):
        self.credential = credential
        self.client = client
        self.settings = settings or get_settings()
        self.calendar_id = calendar_id

    async def _get(self, path: str, **kwargs: Any) -> Any | None:
        return await calendar_request(
            self.credential.access_token, path, client=self.client, settings=self.settings, **kwargs
        )

    async def _mutate(self, path: str, **kwargs: Any) -> Any:
        result = await self._get(path, **kwargs)
        if result is None:
            raise AuthError(f"Google Calendar rejected the access token for {self.credential.email}")
        return result

    async def list_events(self, time_min: str, time_max: str, limit: int) -> list[CalendarEvent]:
        result = await self._get(
            f"/calendars/{self.calendar_id}/events",
            params={
                "timeMin": time_min,
                "timeMax": time_max,
                "singleEvents": "true",
                "orderBy": "startTime",
                "maxResults": limit,
            },
        )
        if not result:
            return []
        return [to_event(e, account=self.credential.email) for e in result.get("items") or []]

    async def create_event(self, event: EventInput) -> CalendarResult:
        created = await self._mutate(f"/calendars/{self.calendar_id}/events", method="POST", json=to_payload(event))
        logger.info(f"Created calendar event {created.get('id')} for {self.credential.email}")
        return CalendarResult.ok(event_id=created.get("id"))

    async def update_event(self, event_id: str, updates: EventInput) -> CalendarResult:
        await self._mutate(f"/calendars/{self.calendar_id}/events/{event_id}", method="PATCH", json=to_payload(updates))
        return CalendarResult.ok(event_id=event_id)

    async def delete_event(self, event_id: str) -> CalendarResult:
        await self._mutate(f"/calendars/{self.calendar_id}/events/{event_id}", method="DELETE")
        return CalendarResult.ok(event_id=event_id)

    async def get_free_busy(
        self, time_min: str, time_max: str, calendar_ids: Optional[list[str]] = None
    ) -> FreeBusyResult:
        ids = calendar_ids or [self.calendar_id]
        result = await self._get(
            "/freeBusy",
            method="POST",
            json={"timeMin": time_min, "timeMax": time_max, "items": [{"id": i} for i in ids]},
        )
        if not result:
            return FreeBusyResult()

        busy = [
            BusySlot(start=b["start"], end=b["end"])
            for calendar in (result.get("calendars") or {}).values()
            for b in calendar.get("busy") or []
        ]
        return FreeBusyResult(busy=busy, free=free_slots(busy, time_min, time_max))
