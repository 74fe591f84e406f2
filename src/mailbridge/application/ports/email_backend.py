from __future__ import annotations
from typing import Optional

from mailbridge.domain.entities.calendar import CalendarEvent, EventInput, FreeBusyResult
from mailbridge.domain.entities.mail import (
    Attachment,
    AttachmentContent,
    Contact,
    Label,
    Message,
    OutgoingMessage,
    ThreadRef,
    ThreadSummary,
)
from mailbridge.domain.entities.results import CalendarResult, DraftResult, OperationResult, SendResult


class EmailBackend:
    """One vendor's mail API behind the shared method set.

    Implementations raise MailBridgeError subclasses; the use-case layer turns
    them into failed results for mutating operations.
    """

    name: str = ""

    # Inbox / search / read
    async def list_inbox(self, limit: int) -> list[ThreadSummary]:
        raise NotImplementedError

    async def search(self, query: str, limit: int, include_done: bool) -> list[ThreadSummary]:
        raise NotImplementedError

    async def read_thread(self, thread_id: str) -> list[Message]:
        raise NotImplementedError

    async def thread_message_ids(self, thread_id: str) -> list[str]:
        raise NotImplementedError

    # Labels / folders
    async def list_labels(self) -> list[Label]:
        raise NotImplementedError

    async def get_thread_labels(self, thread_id: str) -> list[Label]:
        raise NotImplementedError

    async def add_label(self, thread_id: str, label_id: str) -> OperationResult:
        raise NotImplementedError

    async def remove_label(self, thread_id: str, label_id: str) -> OperationResult:
        raise NotImplementedError

    async def star(self, thread_id: str) -> OperationResult:
        raise NotImplementedError

    async def unstar(self, thread_id: str) -> OperationResult:
        raise NotImplementedError

    async def list_starred(self, limit: int) -> list[ThreadRef]:
        raise NotImplementedError

    # Archive / trash / read status
    async def archive(self, thread_id: str) -> OperationResult:
        raise NotImplementedError

    async def trash(self, thread_id: str) -> OperationResult:
        raise NotImplementedError

    async def mark_read(self, thread_id: str) -> OperationResult:
        raise NotImplementedError

    async def mark_unread(self, thread_id: str) -> OperationResult:
        raise NotImplementedError

    # Sending
    async def send(self, message: OutgoingMessage) -> SendResult:
        raise NotImplementedError

    async def create_draft(self, message: OutgoingMessage) -> DraftResult:
        raise NotImplementedError

    async def update_draft(self, draft_id: str, message: OutgoingMessage) -> DraftResult:
        raise NotImplementedError

    async def send_draft(self, draft_id: str) -> SendResult:
        raise NotImplementedError

    async def delete_draft(self, draft_id: str) -> OperationResult:
        raise NotImplementedError

    # Replies
    async def send_reply(self, original: Message, message: OutgoingMessage) -> SendResult:
        """Send ``message`` as a reply to ``original``.

        The default relies on ``thread_id`` and the In-Reply-To/References
        headers carried by ``message``.
        """
        return await self.send(message)

    async def create_reply_draft(self, original: Message, message: OutgoingMessage) -> DraftResult:
        return await self.create_draft(message)

    # Attachments
    async def list_attachments(self, thread_id: str) -> list[Attachment]:
        raise NotImplementedError

    async def download_attachment(self, message_id: str, attachment_id: str) -> AttachmentContent:
        raise NotImplementedError

    async def add_attachment(self, draft_id: str, filename: str, mime_type: str, data: bytes) -> OperationResult:
        raise NotImplementedError

    # Contacts
    async def search_contacts(self, query: str, limit: int) -> list[Contact]:
        raise NotImplementedError


class CalendarBackend:
    """One vendor's calendar API behind the shared method set."""

    name: str = ""

    async def list_events(self, time_min: str, time_max: str, limit: int) -> list[CalendarEvent]:
        raise NotImplementedError

    async def create_event(self, event: EventInput) -> CalendarResult:
        raise NotImplementedError

    async def update_event(self, event_id: str, updates: EventInput) -> CalendarResult:
        raise NotImplementedError

    async def delete_event(self, event_id: str) -> CalendarResult:
        raise NotImplementedError

    async def get_free_busy(self, time_min: str, time_max: str, calendar_ids: Optional[list[str]]) -> FreeBusyResult:
        raise NotImplementedError
