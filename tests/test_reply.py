"""
Tests for reply, reply-all and forward
"""
import base64
from email import message_from_bytes

import pytest

from conftest import GMAIL_EMAIL, GRAPH_EMAIL, Router
from mailbridge.application.use_cases import reply
from mailbridge.domain.entities.mail import Address, Message


def original(sender="ada@x.com", to=(GMAIL_EMAIL, "bo@x.com"), cc=("cy@x.com",), **kwargs):
    fields = dict(
        id="m2",
        thread_id="t-1",
        subject="Plan",
        sender=Address(sender, "Ada"),
        to=[Address(e) for e in to],
        cc=[Address(e) for e in cc],
        date="Tue, 14 May 2024 10:00:00 +0000",
        snippet="",
        body="line one\nline two",
        internet_message_id="<m2@x.com>",
        references=["<m1@x.com>"],
    )
    fields.update(kwargs)
    return Message(**fields)


def gmail_message(message_id, references="", body="line one\nline two"):
    headers = [
        {"name": "Subject", "value": "Plan"},
        {"name": "From", "value": "Ada <ada@x.com>"},
        {"name": "To", "value": f"{GMAIL_EMAIL}, bo@x.com"},
        {"name": "Cc", "value": "cy@x.com"},
        {"name": "Date", "value": "Tue, 14 May 2024 10:00:00 +0000"},
        {"name": "Message-ID", "value": f"<{message_id}@x.com>"},
        {"name": "References", "value": references},
    ]
    data = base64.urlsafe_b64encode(body.encode()).decode().rstrip("=")
    return {"id": message_id, "payload": {"mimeType": "text/plain", "headers": headers, "body": {"data": data}}}


GMAIL_THREAD = {"id": "t-1", "messages": [gmail_message("m1"), gmail_message("m2", references="<m1@x.com>")]}


def graph_message(message_id, received, body="<p>Original</p>"):
    return {
        "id": message_id,
        "conversationId": "c-1",
        "subject": "Plan",
        "from": {"emailAddress": {"address": "ada@x.com", "name": "Ada"}},
        "toRecipients": [{"emailAddress": {"address": GRAPH_EMAIL}}, {"emailAddress": {"address": "bo@x.com"}}],
        "ccRecipients": [{"emailAddress": {"address": "cy@x.com"}}],
        "receivedDateTime": received,
        "body": {"contentType": "html", "content": body},
        "internetMessageId": f"<{message_id}@x.com>",
    }


GRAPH_LISTING = {"value": [graph_message("g2", "2024-05-14T11:00:00Z"), graph_message("g1", "2024-05-14T10:00:00Z")]}


def decode_raw(request):
    body = Router.body(request)
    raw = body.get("raw") or body["message"]["raw"]
    return message_from_bytes(base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4)))


class TestReplyRecipients:

    def test_reply_goes_to_sender(self):
        assert reply.reply_recipients(original(), GMAIL_EMAIL, reply_all=False) == (["ada@x.com"], [])

    def test_reply_all_drops_me_and_keeps_cc(self):
        to, cc = reply.reply_recipients(original(cc=("cy@x.com", GMAIL_EMAIL.upper())), GMAIL_EMAIL, reply_all=True)
        assert to == ["ada@x.com", "bo@x.com"]
        assert cc == ["cy@x.com"]

    def test_reply_all_deduplicates_case_insensitively(self):
        to, cc = reply.reply_recipients(original(to=("ADA@x.com", "bo@x.com"), cc=("Bo@x.com",)), "me@x.com", True)
        assert to == ["ada@x.com", "bo@x.com"]
        assert cc == []

    def test_replying_to_own_message_goes_to_its_recipients(self):
        own = original(sender=GMAIL_EMAIL, to=("bo@x.com",), cc=())
        assert reply.reply_recipients(own, GMAIL_EMAIL, reply_all=False) == (["bo@x.com"], [])

    def test_own_message_without_recipients_falls_back_to_sender(self):
        own = original(sender=GMAIL_EMAIL, to=(), cc=())
        assert reply.reply_recipients(own, GMAIL_EMAIL, reply_all=False) == ([GMAIL_EMAIL], [])


class TestReplyBuilding:

    @pytest.mark.parametrize(
        "subject, prefix, expected",
        [
            ("Plan", "Re:", "Re: Plan"),
            ("Re: Plan", "Re:", "Re: Plan"),
            ("RE: Plan", "Re:", "RE: Plan"),
            ("Plan", "Fwd:", "Fwd: Plan"),
            ("fwd: Plan", "Fwd:", "fwd: Plan"),
        ],
    )
    def test_subject_prefix_added_once(self, subject, prefix, expected):
        assert reply.prefixed_subject(subject, prefix) == expected

    def test_threading_headers(self):
        message = reply.build_reply(original(), "ok", GMAIL_EMAIL)
        assert message.thread_id == "t-1"
        assert message.in_reply_to == "<m2@x.com>"
        assert message.references == ["<m1@x.com>", "<m2@x.com>"]

    def test_without_message_id_references_are_kept(self):
        message = reply.build_reply(original(internet_message_id=None), "ok", GMAIL_EMAIL)
        assert message.in_reply_to is None
        assert message.references == ["<m1@x.com>"]

    def test_forward_body_escapes_text_and_keeps_html(self):
        body = reply.build_forward_body(original(), "Tom & Jerry\nsee below")
        assert body.index("Tom &amp; Jerry<br>see below") < body.index("Forwarded message")
        assert "From: Ada &lt;ada@x.com&gt;" in body
        assert "Subject: Plan" in body
        assert "line one<br>line two" in body

        html_body = reply.build_forward_body(original(body="<p>Hi</p>"))
        assert html_body.startswith("<div>---------- Forwarded message")
        assert "<p>Hi</p>" in html_body


class TestGmailReply:

    @pytest.mark.asyncio
    async def test_reply_sends_in_thread(self, gmail_provider, client, settings, router):
        router.add("GET", "/threads/t-1", GMAIL_THREAD)
        router.add("POST", "/messages/send", {"id": "s-1", "threadId": "t-1"})

        result = await reply.reply_to_thread(gmail_provider, "t-1", "Sounds good", send=True, client=client, settings=settings)
        assert (result.success, result.message_id, result.thread_id, result.draft_id) == (True, "s-1", "t-1", None)

        request = router.calls("POST", "/messages/send")[0]
        assert Router.body(request)["threadId"] == "t-1"
        mime = decode_raw(request)
        assert mime["To"] == "ada@x.com"
        assert mime["Cc"] is None
        assert mime["Subject"] == "Re: Plan"
        assert mime["In-Reply-To"] == "<m2@x.com>"
        assert mime["References"] == "<m1@x.com> <m2@x.com>"

    @pytest.mark.asyncio
    async def test_reply_all_saves_draft_by_default(self, gmail_provider, client, settings, router):
        router.add("GET", "/threads/t-1", GMAIL_THREAD)
        router.add("POST", "/drafts", {"id": "d-1", "message": {"id": "dm-1", "threadId": "t-1"}})

        result = await reply.reply_all_to_thread(gmail_provider, "t-1", "All good", client=client, settings=settings)
        assert (result.draft_id, result.message_id, result.thread_id) == ("d-1", "dm-1", "t-1")
        assert router.calls("POST", "/messages/send") == []

        mime = decode_raw(router.calls("POST", "/drafts")[0])
        assert mime["To"] == "ada@x.com, bo@x.com"
        assert mime["Cc"] == "cy@x.com"

    @pytest.mark.asyncio
    async def test_forward_is_a_new_message(self, gmail_provider, client, settings, router):
        router.add("GET", "/threads/t-1", GMAIL_THREAD)
        router.add("POST", "/messages/send", {"id": "s-2", "threadId": "t-9"})

        result = await reply.forward_thread(gmail_provider, "t-1", "zed@x.com", "FYI", send=True, client=client, settings=settings)
        assert result.success

        request = router.calls("POST", "/messages/send")[0]
        assert "threadId" not in Router.body(request)
        mime = decode_raw(request)
        assert mime["To"] == "zed@x.com"
        assert mime["Subject"] == "Fwd: Plan"
        assert mime["In-Reply-To"] is None
        assert mime.get_content_type() == "text/html"
        content = mime.get_payload(decode=True).decode()
        assert "FYI" in content
        assert "Forwarded message" in content
        assert "line one<br>line two" in content

    @pytest.mark.asyncio
    async def test_unreadable_thread_is_failed_result(self, gmail_provider, client, settings, router):
        router.add("GET", "/threads/t-1", {}, status=500)
        result = await reply.reply_to_thread(gmail_provider, "t-1", "hi", send=True, client=client, settings=settings)
        assert not result.success
        assert result.error == reply.NO_THREAD
        assert router.calls("POST") == []

    @pytest.mark.asyncio
    async def test_empty_thread_is_failed_result(self, gmail_provider, client, settings, router):
        router.add("GET", "/threads/t-1", {"id": "t-1", "messages": []})
        result = await reply.forward_thread(gmail_provider, "t-1", "zed@x.com", client=client, settings=settings)
        assert not result.success
        assert result.error == reply.NO_THREAD

    @pytest.mark.asyncio
    async def test_send_failure_is_failed_result(self, gmail_provider, client, settings, router):
        router.add("GET", "/threads/t-1", GMAIL_THREAD)
        router.add("POST", "/messages/send", {}, status=400)
        result = await reply.reply_to_thread(gmail_provider, "t-1", "hi", send=True, client=client, settings=settings)
        assert not result.success
        assert "400" in result.error


class TestGraphReply:

    @pytest.mark.asyncio
    async def test_reply_uses_create_reply(self, graph_provider, client, settings, router):
        router.add("GET", "/me/messages", GRAPH_LISTING)
        router.add("POST", "/me/messages/g2/createReply", {"id": "r-1", "conversationId": "c-1"}, status=201)
        router.add("PATCH", "/me/messages/r-1", {"id": "r-1"})
        router.add("POST", "/me/messages/r-1/send", status=202)

        result = await reply.reply_to_thread(graph_provider, "c-1", "Sounds good", send=True, client=client, settings=settings)
        assert (result.success, result.message_id, result.thread_id) == (True, "r-1", "c-1")

        patch = Router.body(router.calls("PATCH", "/me/messages/r-1")[0])
        assert patch["subject"] == "Re: Plan"
        assert patch["toRecipients"] == [{"emailAddress": {"address": "ada@x.com"}}]
        assert "ccRecipients" not in patch
        assert patch["body"] == {"contentType": "HTML", "content": "Sounds good"}
        assert len(router.calls("POST", "/me/messages/r-1/send")) == 1

    @pytest.mark.asyncio
    async def test_reply_all_draft_is_not_sent(self, graph_provider, client, settings, router):
        router.add("GET", "/me/messages", GRAPH_LISTING)
        router.add("POST", "/me/messages/g2/createReply", {"id": "r-2", "conversationId": "c-1"}, status=201)
        router.add("PATCH", "/me/messages/r-2", {"id": "r-2"})

        result = await reply.reply_all_to_thread(graph_provider, "c-1", "All good", client=client, settings=settings)
        assert (result.draft_id, result.thread_id) == ("r-2", "c-1")
        assert router.calls("POST", "/send") == []

        patch = Router.body(router.calls("PATCH")[0])
        assert patch["toRecipients"] == [
            {"emailAddress": {"address": "ada@x.com"}},
            {"emailAddress": {"address": "bo@x.com"}},
        ]
        assert patch["ccRecipients"] == [{"emailAddress": {"address": "cy@x.com"}}]

    @pytest.mark.asyncio
    async def test_forward_keeps_original_html(self, graph_provider, client, settings, router):
        router.add("GET", "/me/messages", GRAPH_LISTING)
        router.add("POST", "/me/sendMail", status=202)

        result = await reply.forward_thread(
            graph_provider, "c-1", ["zed@x.com", "yu@x.com"], send=True, client=client, settings=settings
        )
        assert result.success

        message = Router.body(router.calls("POST", "/me/sendMail")[0])["message"]
        assert message["subject"] == "Fwd: Plan"
        assert [r["emailAddress"]["address"] for r in message["toRecipients"]] == ["zed@x.com", "yu@x.com"]
        assert "<p>Original</p>" in message["body"]["content"]
        assert router.calls("POST", "/createReply") == []

    @pytest.mark.asyncio
    async def test_rejected_token_during_reply_is_failed_result(self, graph_provider, client, settings, router):
        router.add("GET", "/me/messages", GRAPH_LISTING)
        router.add("POST", "/me/messages/g2/createReply", {}, status=401)
        result = await reply.reply_to_thread(graph_provider, "c-1", "hi", send=True, client=client, settings=settings)
        assert not result.success
        assert GRAPH_EMAIL in result.error
