"""Microsoft Graph implementation of CalendarBackend (default calendar)."""

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
from mailbridge.infrastructure.http.rest import graph_request
from mailbridge.infrastructure.settings import Settings, get_settings

# Graph's response vocabulary differs from Google's
RESPONSE_STATUS = {
    "accepted": "accepted",
    "declined": "declined",
    "tentativelyAccepted": "tentative",
    "organizer": "accepted",
    "none": "needsAction",
    "notResponded": "needsAction",
}


def _to_time(raw: dict[str, Any] | None, all_day: bool) -> EventTime:
    raw = raw or {}
    date_time = raw.get("dateTime")
    if all_day and date_time:
        return EventTime(date=date_time[:10], time_zone=raw.get("timeZone"))
    return EventTime(date_time=date_time, time_zone=raw.get("timeZone"))


def _from_time(value: EventTime) -> dict[str, Any]:
    if value.date:
        return {"dateTime": f"{value.date}T00:00:00", "timeZone": value.time_zone or "UTC"}
    return {"dateTime": value.date_time, "timeZone": value.time_zone or "UTC"}


def to_event(raw: dict[str, Any], account: Optional[str] = None) -> CalendarEvent:
    all_day = bool(raw.get("isAllDay"))
    return CalendarEvent(
        id=raw["id"],
        summary=raw.get("subject") or "(no title)",
        start=_to_time(raw.get("start"), all_day),
        end=_to_time(raw.get("end"), all_day),
        attendees=[
            Attendee(
                email=(a.get("emailAddress") or {}).get("address", ""),
                display_name=(a.get("emailAddress") or {}).get("name", ""),
                response_status=RESPONSE_STATUS.get((a.get("status") or {}).get("response", "none"), "needsAction"),
            )
            for a in raw.get("attendees") or []
        ],
        description=raw.get("bodyPreview") or None,
        location=(raw.get("location") or {}).get("displayName") or None,
        all_day=all_day,
        status="cancelled" if raw.get("isCancelled") else "confirmed",
        html_link=raw.get("webLink"),
        provider="microsoft",
        account=account,
    )


def to_payload(event: EventInput) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if event.summary is not None:
        payload["subject"] = event.summary
    if event.start is not None:
        payload["start"] = _from_time(event.start)
        payload["isAllDay"] = event.start.date is not None
    if event.end is not None:
        payload["end"] = _from_time(event.end)
    if event.description is not None:
        payload["body"] = {"contentType": "Text", "content": event.description}
    if event.location is not None:
        payload["location"] = {"displayName": event.location}
    if event.attendees is not None:
        payload["attendees"] = [
            {"emailAddress": {"address": a.email, "name": a.display_name}, "type": "required"}
            for a in event.attendees
        ]
    return payload


class GraphCalendarBackend(CalendarBackend):
    name = "msgraph-calendar"

    def __init__(
        self,
        credential: Credential,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.credential = credential
        self.client = client
        self.settings = settings or get_settings()

    async def _get(self, path: str, **kwargs: Any) -> Any | None:
        return await graph_request(
            self.credential.access_token, path, client=self.client, settings=self.settings, **kwargs
        )

    async def _mutate(self, path: str, **kwargs: Any) -> Any:
        result = await self._get(path, **kwargs)
        if result is None:
            raise AuthError(f"MS Graph rejected the access token for {self.credential.email}")
        return result

    async def _calendar_view(self, time_min: str, time_max: str, limit: int) -> list[dict[str, Any]]:
        result = await self._get(
            "/me/calendarView",
            params={
                "startDateTime": time_min,
                "endDateTime": time_max,
                "$top": limit,
                "$orderby": "start/dateTime",
            },
        )
        if not result:
            return []
        return result.get("value") or []

    async def list_events(self, time_min: str, time_max: str, limit: int) -> list[CalendarEvent]:
        return [to_event(e, account=self.credential.email) for e in await self._calendar_view(time_min, time_max, limit)]

    async def create_event(self, event: EventInput) -> CalendarResult:
        if event.recurrence:
            logger.warning("Recurrence rules are not translated for Microsoft calendars; creating a single event")
        created = await self._mutate("/me/events", method="POST", json=to_payload(event))
        logger.info(f"Created calendar event {created.get('id')} for {self.credential.email}")
        return CalendarResult.ok(event_id=created.get("id"))

    async def update_event(self, event_id: str, updates: EventInput) -> CalendarResult:
        await self._mutate(f"/me/events/{event_id}", method="PATCH", json=to_payload(updates))
        return CalendarResult.ok(event_id=event_id)

    async def delete_event(self, event_id: str) -> CalendarResult:
        await self._mutate(f"/me/events/{event_id}", method="DELETE")
        return CalendarResult.ok(event_id=event_id)

    async def get_free_busy(
        self, time_min: str, time_max: str, calendar_ids: Optional[list[str]] = None
    ) -> FreeBusyResult:
        # Busy time is derived from the calendar view of the signed-in user
        events = await self._calendar_view(time_min, time_max, 250)
        busy = [
            BusySlot(start=e["start"]["dateTime"], end=e["end"]["dateTime"])
            for e in events
            if e.get("showAs", "busy") != "free" and not e.get("isCancelled")
        ]
        return FreeBusyResult(busy=busy, free=free_slots(busy, time_min, time_max))
