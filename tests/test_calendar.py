"""
Tests for calendar events, free/busy and the all-accounts view
"""
from datetime import datetime, timezone

import pytest

from conftest import FakeLiveClient, Router, make_credential
from mailbridge.application.use_cases import calendar
from mailbridge.domain.entities.calendar import Attendee, BusySlot, EventInput, EventTime, free_slots

GOOGLE_EVENT = {
    "id": "ev1",
    "summary": "Standup",
    "start": {"dateTime": "2024-05-15T09:00:00Z"},
    "end": {"dateTime": "2024-05-15T09:15:00Z"},
    "attendees": [{"email": "a@x.com", "displayName": "A", "responseStatus": "accepted", "organizer": True}],
    "htmlLink": "https://calendar.example/ev1",
}

GRAPH_EVENT = {
    "id": "gev1",
    "subject": "Offsite",
    "isAllDay": True,
    "start": {"dateTime": "2024-05-16T00:00:00.0000000", "timeZone": "UTC"},
    "end": {"dateTime": "2024-05-17T00:00:00.0000000", "timeZone": "UTC"},
    "attendees": [{"emailAddress": {"address": "b@x.com", "name": "B"}, "status": {"response": "tentativelyAccepted"}}],
    "location": {"displayName": "Lake house"},
}


class TestFreeSlots:

    def test_gaps_between_busy_slots(self):
        busy = [
            BusySlot("2024-05-15T10:00:00Z", "2024-05-15T11:00:00Z"),
            BusySlot("2024-05-15T10:30:00Z", "2024-05-15T12:00:00Z"),
        ]
        free = free_slots(busy, "2024-05-15T09:00:00Z", "2024-05-15T13:00:00Z")
        assert free == [
            BusySlot("2024-05-15T09:00:00+00:00", "2024-05-15T10:00:00+00:00"),
            BusySlot("2024-05-15T12:00:00+00:00", "2024-05-15T13:00:00+00:00"),
        ]

    def test_fully_busy_window(self):
        busy = [BusySlot("2024-05-15T08:00:00Z", "2024-05-15T14:00:00Z")]
        assert free_slots(busy, "2024-05-15T09:00:00Z", "2024-05-15T13:00:00Z") == []


class TestGoogleCalendar:

    @pytest.mark.asyncio
    async def test_list_events(self, gmail_provider, client, settings, router):
        router.add("GET", "/calendars/primary/events", {"items": [GOOGLE_EVENT]})
        events = await calendar.list_events(
            gmail_provider, "2024-05-15T00:00:00Z", "2024-05-16T00:00:00Z", client=client, settings=settings
        )
        event = events[0]
        assert event.summary == "Standup"
        assert event.start == EventTime(date_time="2024-05-15T09:00:00Z")
        assert event.attendees[0] == Attendee("a@x.com", "A", "accepted", True)
        assert event.provider == "google"
        params = router.requests[0].url.params
        assert params["singleEvents"] == "true"
        assert params["orderBy"] == "startTime"

    @pytest.mark.asyncio
    async def test_default_window_is_one_week(self, gmail_provider, client, settings, router):
        router.add("GET", "/calendars/primary/events", {"items": []})
        await calendar.list_events(gmail_provider, client=client, settings=settings)
        params = router.requests[0].url.params
        start = datetime.fromisoformat(params["timeMin"].replace("Z", "+00:00"))
        end = datetime.fromisoformat(params["timeMax"].replace("Z", "+00:00"))
        assert (end - start).days == 7
        assert abs((start - datetime.now(timezone.utc)).total_seconds()) < 60

    @pytest.mark.asyncio
    async def test_create_event(self, gmail_provider, client, settings, router):
        router.add("POST", "/calendars/primary/events", {"id": "new-ev"})
        event = EventInput(
            summary="Lunch",
            start=EventTime(date_time="2024-05-15T12:00:00Z"),
            end=EventTime(date_time="2024-05-15T13:00:00Z"),
            attendees=[Attendee("c@x.com")],
        )
        result = await calendar.create_event(gmail_provider, event, client=client, settings=settings)
        assert result.success and result.event_id == "new-ev"
        body = Router.body(router.requests[0])
        assert body["summary"] == "Lunch"
        assert body["attendees"] == [{"email": "c@x.com", "displayName": ""}]

    @pytest.mark.asyncio
    async def test_create_event_needs_summary_and_times(self, gmail_provider, client, settings, router):
        result = await calendar.create_event(gmail_provider, EventInput(summary="x"), client=client, settings=settings)
        assert not result.success
        assert router.requests == []

    @pytest.mark.asyncio
    async def test_update_sends_only_changed_fields(self, gmail_provider, client, settings, router):
        router.add("PATCH", "/calendars/primary/events/ev1", {"id": "ev1"})
        result = await calendar.update_event(
            gmail_provider, "ev1", EventInput(location="Room 2"), client=client, settings=settings
        )
        assert result.success
        assert Router.body(router.requests[0]) == {"location": "Room 2"}

    @pytest.mark.asyncio
    async def test_delete_missing_event_fails(self, gmail_provider, client, settings):
        result = await calendar.delete_event(gmail_provider, "gone", client=client, settings=settings)
        assert not result.success
        assert "404" in result.error

    @pytest.mark.asyncio
    async def test_free_busy(self, gmail_provider, client, settings, router):
        router.add(
            "POST",
            "/freeBusy",
            {"calendars": {"primary": {"busy": [{"start": "2024-05-15T10:00:00Z", "end": "2024-05-15T11:00:00Z"}]}}},
        )
        result = await calendar.get_free_busy(
            gmail_provider, "2024-05-15T09:00:00Z", "2024-05-15T12:00:00Z", client=client, settings=settings
        )
        assert result.busy == [BusySlot("2024-05-15T10:00:00Z", "2024-05-15T11:00:00Z")]
        assert len(result.free) == 2
        assert Router.body(router.requests[0])["items"] == [{"id": "primary"}]


class TestGraphCalendar:

    @pytest.mark.asyncio
    async def test_list_events_maps_all_day(self, graph_provider, client, settings, router):
        router.add("GET", "/me/calendarView", {"value": [GRAPH_EVENT]})
        events = await calendar.list_events(
            graph_provider, "2024-05-15T00:00:00Z", "2024-05-20T00:00:00Z", client=client, settings=settings
        )
        event = events[0]
        assert event.all_day
        assert event.start.date == "2024-05-16"
        assert event.location == "Lake house"
        assert event.attendees[0].response_status == "tentative"
        assert event.provider == "microsoft"
        assert router.requests[0].url.params["startDateTime"] == "2024-05-15T00:00:00Z"

    @pytest.mark.asyncio
    async def test_create_event_payload(self, graph_provider, client, settings, router):
        router.add("POST", "/me/events", {"id": "g-new"}, status=201)
        result = await calendar.create_event(
            graph_provider,
            EventInput(summary="Review", start=EventTime(date="2024-05-20"), end=EventTime(date="2024-05-21")),
            client=client,
            settings=settings,
        )
        assert result.event_id == "g-new"
        body = Router.body(router.requests[0])
        assert body["subject"] == "Review"
        assert body["isAllDay"] is True
        assert body["start"] == {"dateTime": "2024-05-20T00:00:00", "timeZone": "UTC"}

    @pytest.mark.asyncio
    async def test_free_busy_from_calendar_view(self, graph_provider, client, settings, router):
        router.add(
            "GET",
            "/me/calendarView",
            {"value": [
                {"id": "1", "showAs": "busy", "start": {"dateTime": "2024-05-15T10:00:00.0000000"},
                 "end": {"dateTime": "2024-05-15T11:00:00.0000000"}},
                {"id": "2", "showAs": "free", "start": {"dateTime": "2024-05-15T11:00:00.0000000"},
                 "end": {"dateTime": "2024-05-15T12:00:00.0000000"}},
            ]},
        )
        result = await calendar.get_free_busy(
            graph_provider, "2024-05-15T09:00:00Z", "2024-05-15T12:00:00Z", client=client, settings=settings
        )
        assert len(result.busy) == 1
        assert [s.end for s in result.free] == ["2024-05-15T10:00:00+00:00", "2024-05-15T12:00:00+00:00"]


class TestAllAccounts:

    @pytest.mark.asyncio
    async def test_merges_tags_sorts_and_restores(self, client, settings, router):
        session = FakeLiveClient(["g@x.com", "m@x.com"], current="m@x.com")
        session.credentials["g@x.com"] = make_credential("g@x.com")
        session.credentials["m@x.com"] = make_credential("m@x.com", microsoft=True)

        router.add("GET", "/calendars/primary/events", {"items": [GOOGLE_EVENT]})
        router.add(
            "GET",
            "/me/calendarView",
            {"value": [{**GRAPH_EVENT, "isAllDay": False,
                        "start": {"dateTime": "2024-05-15T08:00:00Z"}, "end": {"dateTime": "2024-05-15T08:30:00Z"}}]},
        )

        events = await calendar.list_events_all_accounts(
            session, "2024-05-15T00:00:00Z", "2024-05-16T00:00:00Z", client=client, settings=settings
        )
        assert [(e.id, e.account) for e in events] == [("gev1", "m@x.com"), ("ev1", "g@x.com")]
        assert session.current == "m@x.com"
        assert session.switch_requests == ["g@x.com", "m@x.com"]

    @pytest.mark.asyncio
    async def test_skips_accounts_that_do_not_switch(self, client, settings, router):
        session = FakeLiveClient(["g@x.com", "ghost@x.com"], current="g@x.com")
        session.credentials["g@x.com"] = make_credential("g@x.com")
        router.add("GET", "/calendars/primary/events", {"items": [GOOGLE_EVENT]})

        # ghost@x.com never becomes active
        session.switch_active_account = _never_switches(session)
        events = await calendar.list_events_all_accounts(session, client=client, settings=settings)
        assert [e.account for e in events] == ["g@x.com"]


def _never_switches(session):
    async def switch(email):
        session.switch_requests.append(email)
        return True

    return switch
