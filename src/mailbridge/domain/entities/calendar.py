from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Optional


@dataclass(frozen=True)
class EventTime:
    # Exactly one of date (all-day, YYYY-MM-DD) or date_time (ISO-8601) is set
    date: Optional[str] = None
    date_time: Optional[str] = None
    time_zone: Optional[str] = None

    @property
    def sort_key(self) -> str:
        return self.date_time or self.date or ""


@dataclass(frozen=True)
class Attendee:
    email: str
    display_name: str = ""
    response_status: str = "needsAction"
    organizer: bool = False


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    summary: str
    start: EventTime
    end: EventTime
    attendees: list[Attendee] = field(default_factory=list)
    description: Optional[str] = None
    location: Optional[str] = None
    all_day: bool = False
    status: str = "confirmed"
    html_link: Optional[str] = None
    provider: Optional[Literal["google", "microsoft"]] = None
    account: Optional[str] = None


@dataclass(frozen=True)
class EventInput:
    """Fields for creating an event, or a partial update when fields are None."""

    summary: Optional[str] = None
    start: Optional[EventTime] = None
    end: Optional[EventTime] = None
    description: Optional[str] = None
    location: Optional[str] = None
    attendees: Optional[list[Attendee]] = None
    recurrence: Optional[list[str]] = None


@dataclass(frozen=True)
class BusySlot:
    start: str
    end: str


@dataclass(frozen=True)
class FreeBusyResult:
    busy: list[BusySlot] = field(default_factory=list)
    free: list[BusySlot] = field(default_factory=list)


def _parse_instant(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    # Graph reports naive times in UTC unless a Prefer header asks otherwise
    parsed = parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def free_slots(busy: list[BusySlot], time_min: str, time_max: str) -> list[BusySlot]:
    """Gaps in [time_min, time_max) not covered by any busy slot."""
    window_start, window_end = _parse_instant(time_min), _parse_instant(time_max)
    cursor = window_start
    free: list[BusySlot] = []
    for slot in sorted(busy, key=lambda s: _parse_instant(s.start)):
        start, end = _parse_instant(slot.start), _parse_instant(slot.end)
        gap_end = min(start, window_end)
        if gap_end > cursor:
            free.append(BusySlot(start=cursor.isoformat(), end=gap_end.isoformat()))
        cursor = max(cursor, end)
        if cursor >= window_end:
            break
    if cursor < window_end:
        free.append(BusySlot(start=cursor.isoformat(), end=window_end.isoformat()))
    return free
