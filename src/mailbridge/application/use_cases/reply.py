"""Reply, reply-all and forward.

All three start from the newest message of the thread. Replies stay in the
thread: Gmail through ``threadId`` plus In-Reply-To/References, Graph through
``createReply``. Forwards are new messages carrying the original below a
"Forwarded message" block.
"""

from __future__ import annotations

import html
from email.utils import formataddr
from typing import Optional, Union

import httpx
from loguru import logger

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.application.ports.email_backend import EmailBackend
from mailbridge.application.use_cases.batch import guarded
from mailbridge.domain.entities.mail import Address, Message, OutgoingMessage
from mailbridge.domain.entities.results import DraftResult, ReplyResult, SendResult
from mailbridge.domain.errors import MailBridgeError
from mailbridge.infrastructure.email.factory import BackendFactory
from mailbridge.infrastructure.settings import Settings

NO_THREAD = "Could not get thread information"


def prefixed_subject(subject: str, prefix: str) -> str:
    """Add ``Re:``/``Fwd:`` unless the subject already starts with it."""
    if subject.lower().startswith(prefix.lower()):
        return subject
    return f"{prefix} {subject}"


def _unique(emails: list[str], exclude: set[str]) -> list[str]:
    seen = set(exclude)
    out = []
    for email in emails:
        key = email.lower()
        if email and key not in seen:
            seen.add(key)
            out.append(email)
    return out


def reply_recipients(original: Message, me: str, reply_all: bool) -> tuple[list[str], list[str]]:
    """Work out (to, cc) for a reply to ``original`` sent by ``me``.

    A reply goes to the sender. Replying to one's own message goes to its
    recipients instead. Reply-all adds the other To and Cc addresses; ``me``
    never appears in either list.
    """
    me_key = me.lower()
    sender = original.sender.email
    own_message = sender.lower() == me_key

    to = [a.email for a in original.to] if own_message else [sender]
    if reply_all and not own_message:
        to += [a.email for a in original.to]
    to = _unique(to, {me_key}) or [sender]

    cc = _unique([a.email for a in original.cc], {me_key, *(e.lower() for e in to)}) if reply_all else []
    return to, cc


def build_reply(
    original: Message, body: str, me: str, reply_all: bool = False, is_html: bool = True
) -> OutgoingMessage:
    to, cc = reply_recipients(original, me, reply_all)
    references = list(original.references)
    if original.internet_message_id and original.internet_message_id not in references:
        references.append(original.internet_message_id)
    return OutgoingMessage(
        to=to,
        cc=cc,
        subject=prefixed_subject(original.subject, "Re:"),
        body=body,
        is_html=is_html,
        thread_id=original.thread_id,
        in_reply_to=original.internet_message_id,
        references=references,
    )


def _text_to_html(text: str) -> str:
    return html.escape(text).replace("\n", "<br>")


def _format_address(address: Address) -> str:
    return formataddr((address.name, address.email)) if address.email else "unknown"


def build_forward_body(original: Message, note: str = "") -> str:
    """HTML body: the optional note, the forwarded headers, then the original body."""
    parts = []
    if note:
        parts += [f"<div>{_text_to_html(note)}</div>", "<br>"]

    recipients = ", ".join(_format_address(a) for a in original.to) or "unknown"
    parts += [
        "<div>---------- Forwarded message ---------</div>",
        f"<div>From: {html.escape(_format_address(original.sender))}</div>",
        f"<div>Date: {html.escape(original.date)}</div>",
        f"<div>Subject: {html.escape(original.subject)}</div>",
        f"<div>To: {html.escape(recipients)}</div>",
        "<br>",
    ]

    original_body = original.body or original.snippet or ""
    # HTML bodies are forwarded as they are
    parts.append(f"<div>{original_body if '<' in original_body else _text_to_html(original_body)}</div>")
    return "\n".join(parts)


def _reply_result(result: Union[SendResult, DraftResult]) -> ReplyResult:
    if not result.success:
        return ReplyResult.failed(result.error or "unknown error")
    if isinstance(result, DraftResult):
        return ReplyResult.ok(draft_id=result.draft_id, message_id=result.message_id, thread_id=result.thread_id)
    return ReplyResult.ok(message_id=result.message_id, thread_id=result.thread_id)


async def _last_message(backend: EmailBackend, thread_id: str) -> Optional[Message]:
    try:
        messages = await backend.read_thread(thread_id)
    except MailBridgeError as e:
        logger.error(f"Could not read thread {thread_id}: {e}")
        return None
    return messages[-1] if messages else None


async def _reply(
    provider: ConnectionProvider,
    thread_id: str,
    body: str,
    reply_all: bool,
    send: bool,
    is_html: bool,
    client: Optional[httpx.AsyncClient],
    settings: Optional[Settings],
) -> ReplyResult:
    credential = await provider.get_token()
    backend = BackendFactory.email(credential, client=client, settings=settings)

    original = await _last_message(backend, thread_id)
    if original is None:
        return ReplyResult.failed(NO_THREAD)

    message = build_reply(original, body, credential.email, reply_all=reply_all, is_html=is_html)
    action = "reply all" if reply_all else "reply"
    if send:
        result = await guarded(action, thread_id, lambda: backend.send_reply(original, message), SendResult)
    else:
        result = await guarded(action, thread_id, lambda: backend.create_reply_draft(original, message), DraftResult)
    return _reply_result(result)


async def reply_to_thread(
    provider: ConnectionProvider,
    thread_id: str,
    body: str,
    *,
    send: bool = False,
    is_html: bool = True,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> ReplyResult:
    """Reply to the sender of the newest message. Saves a draft unless ``send``."""
    return await _reply(provider, thread_id, body, False, send, is_html, client, settings)


async def reply_all_to_thread(
    provider: ConnectionProvider,
    thread_id: str,
    body: str,
    *,
    send: bool = False,
    is_html: bool = True,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> ReplyResult:
    return await _reply(provider, thread_id, body, True, send, is_html, client, settings)


async def forward_thread(
    provider: ConnectionProvider,
    thread_id: str,
    to: Union[str, list[str]],
    body: str = "",
    *,
    send: bool = False,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> ReplyResult:
    """Forward the newest message of a thread. Attachments are not carried over."""
    credential = await provider.get_token()
    backend = BackendFactory.email(credential, client=client, settings=settings)

    original = await _last_message(backend, thread_id)
    if original is None:
        return ReplyResult.failed(NO_THREAD)

    message = OutgoingMessage(
        to=[to] if isinstance(to, str) else list(to),
        subject=prefixed_subject(original.subject, "Fwd:"),
        body=build_forward_body(original, body),
        is_html=True,
    )
    if send:
        result = await guarded("forward", thread_id, lambda: backend.send(message), SendResult)
    else:
        result = await guarded("forward", thread_id, lambda: backend.create_draft(message), DraftResult)
    return _reply_result(result)
