"""
Tests for linked-account listing, formatting and switching
"""
import json

import pytest

from conftest import FakeLiveClient
from mailbridge.application.use_cases.accounts import (
    format_accounts_json,
    format_accounts_list,
    list_accounts,
    switch_account,
)
from mailbridge.domain.entities.account import Account, SwitchResult
from mailbridge.domain.errors import NetworkError
from mailbridge.infrastructure.live.polling import poll_until


class TestFormatting:

    def test_list_marks_current(self):
        accounts = [Account("a@x.com", False), Account("b@x.com", True)]
        assert format_accounts_list(accounts) == "  1. a@x.com\n* 2. b@x.com (current)"

    def test_empty_list(self):
        assert format_accounts_list([]) == ""

    def test_json(self):
        out = format_accounts_json([Account("a@x.com", True)])
        assert out == '[{"email":"a@x.com","isCurrent":true}]'
        assert json.loads(out) == [{"email": "a@x.com", "isCurrent": True}]


class TestListAccounts:

    @pytest.mark.asyncio
    async def test_flags_current_account(self):
        session = FakeLiveClient(["a@x.com", "b@x.com"], current="b@x.com")
        assert await list_accounts(session) == [Account("a@x.com", False), Account("b@x.com", True)]


class TestSwitchAccount:

    @pytest.mark.asyncio
    async def test_switch_after_a_few_polls(self, settings):
        session = FakeLiveClient(["a@x.com", "b@x.com"], current="a@x.com", switch_delay=2)
        result = await switch_account(session, "b@x.com", settings=settings)
        assert result == SwitchResult(success=True, email="b@x.com")
        assert session.switch_requests == ["b@x.com"]

    @pytest.mark.asyncio
    async def test_already_current_does_nothing(self, settings):
        session = FakeLiveClient(["a@x.com"], current="a@x.com")
        assert (await switch_account(session, "a@x.com", settings=settings)).success
        assert session.switch_requests == []

    @pytest.mark.asyncio
    async def test_gives_up_and_reports_actual_account(self, settings):
        session = FakeLiveClient(["a@x.com"], current="a@x.com")
        result = await switch_account(session, "unknown@x.com", attempts=3, interval=0, settings=settings)
        assert result == SwitchResult(success=False, email="a@x.com")

    @pytest.mark.asyncio
    async def test_transient_check_errors_keep_polling(self, settings):
        session = FakeLiveClient(["a@x.com", "b@x.com"], current="a@x.com")
        original = session.current_account
        calls = {"n": 0}

        async def flaky():
            calls["n"] += 1
            if calls["n"] == 2:
                raise NetworkError("client navigating")
            return await original()

        session.current_account = flaky
        result = await switch_account(session, "b@x.com", settings=settings)
        assert result.success


class TestPollUntil:

    @pytest.mark.asyncio
    async def test_stops_at_first_success(self):
        seen = []

        async def check():
            seen.append(1)
            return len(seen) == 3

        assert await poll_until(check, attempts=10, interval=0)
        assert len(seen) == 3

    @pytest.mark.asyncio
    async def test_bounded_attempts(self):
        seen = []

        async def check():
            seen.append(1)
            return False

        assert not await poll_until(check, attempts=4, interval=0)
        assert len(seen) == 4

    @pytest.mark.asyncio
    async def test_backoff_grows_interval(self, monkeypatch):
        delays = []

        async def fake_sleep(delay):
            delays.append(delay)

        monkeypatch.setattr("mailbridge.infrastructure.live.polling.asyncio.sleep", fake_sleep)

        async def never():
            return False

        await poll_until(never, attempts=4, interval=0.1, backoff=2.0)
        assert delays == pytest.approx([0.1, 0.2, 0.4])
