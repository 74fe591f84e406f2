"""Gmail REST implementation of EmailBackend.

Threads and labels map directly onto the shared model; every thread-level
mutation is a single ``threads.modify`` call.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from loguru import logger

from mailbridge.application.ports.email_backend import EmailBackend
from mailbridge.domain.entities.credential import Credential
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
from mailbridge.domain.entities.results import DraftResult, OperationResult, SendResult
from mailbridge.domain.errors import AuthError, NotFoundError
from mailbridge.infrastructure.email.providers.gmail import mapper
from mailbridge.infrastructure.http.rest import gmail_request, people_request
from mailbridge.infrastructure.settings import Settings, get_settings

SUMMARY_HEADERS = ("Subject", "From", "Date")


class GmailBackend(EmailBackend):
    name = "gmail"

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
        return await gmail_request(
            self.credential.access_token, path, client=self.client, settings=self.settings, **kwargs
        )

    async def _mutate(self, path: str, **kwargs: Any) -> Any:
        result = await self._get(path, **kwargs)
        if result is None:
            raise AuthError(f"Gmail rejected the access token for {self.credential.email}")
        return result

    async def modify_thread(
        self,
        thread_id: str,
        add: Optional[list[str]] = None,
        remove: Optional[list[str]] = None,
    ) -> OperationResult:
        await self._mutate(
            f"/threads/{thread_id}/modify",
            method="POST",
            json={"addLabelIds": add or [], "removeLabelIds": remove or []},
        )
        logger.debug(f"Modified labels on thread {thread_id}: +{add or []} -{remove or []}")
        return OperationResult.ok()

    # Inbox / search / read

    async def _summaries(self, query: str, limit: int) -> list[ThreadSummary]:
        listing = await self._get("/messages", params={"q": query, "maxResults": limit})
        if not listing or not listing.get("messages"):
            return []

        # Several matching messages can share a thread
        thread_ids = list(dict.fromkeys(m["threadId"] for m in listing["messages"]))

        summaries: list[ThreadSummary] = []
        for thread_id in thread_ids[:limit]:
            thread = await self._get(
                f"/threads/{thread_id}",
                params=[("format", "metadata")] + [("metadataHeaders", h) for h in SUMMARY_HEADERS],
            )
            if not thread:
                continue
            summary = mapper.thread_to_summary(thread)
            if summary is not None:
                summaries.append(summary)
        return summaries

    async def list_inbox(self, limit: int) -> list[ThreadSummary]:
        return await self._summaries("label:INBOX", limit)

    async def search(self, query: str, limit: int, include_done: bool) -> list[ThreadSummary]:
        return await self._summaries(query if include_done else f"label:INBOX {query}", limit)

    async def read_thread(self, thread_id: str) -> list[Message]:
        thread = await self._get(f"/threads/{thread_id}", params={"format": "full"})
        if not thread or not thread.get("messages"):
            return []
        return [mapper.to_message(thread.get("id", thread_id), m) for m in thread["messages"]]

    async def thread_message_ids(self, thread_id: str) -> list[str]:
        thread = await self._get(f"/threads/{thread_id}", params={"format": "minimal"})
        if not thread:
            return []
        return [m["id"] for m in thread.get("messages") or []]

    # Labels

    async def list_labels(self) -> list[Label]:
        result = await self._get("/labels")
        if not result:
            return []
        return [mapper.to_label(l) for l in result.get("labels") or []]

    async def get_thread_labels(self, thread_id: str) -> list[Label]:
        thread = await self._get(f"/threads/{thread_id}", params={"format": "minimal"})
        if not thread:
            return []

        label_ids: list[str] = []
        for message in thread.get("messages") or []:
            for label_id in message.get("labelIds") or []:
                if label_id not in label_ids:
                    label_ids.append(label_id)

        known = {l.id: l for l in await self.list_labels()}
        return [known.get(label_id, Label(id=label_id, name=label_id)) for label_id in label_ids]

    async def add_label(self, thread_id: str, label_id: str) -> OperationResult:
        return await self.modify_thread(thread_id, add=[label_id])

    async def remove_label(self, thread_id: str, label_id: str) -> OperationResult:
        return await self.modify_thread(thread_id, remove=[label_id])

    async def star(self, thread_id: str) -> OperationResult:
        return await self.modify_thread(thread_id, add=["STARRED"])

    async def unstar(self, thread_id: str) -> OperationResult:
        return await self.modify_thread(thread_id, remove=["STARRED"])

    async def list_starred(self, limit: int) -> list[ThreadRef]:
        listing = await self._get("/messages", params={"q": "is:starred", "maxResults": limit})
        if not listing:
            return []
        thread_ids = dict.fromkeys(m["threadId"] for m in listing.get("messages") or [])
        return [ThreadRef(id=t) for t in list(thread_ids)[:limit]]

    # Archive / trash / read status

    async def archive(self, thread_id: str) -> OperationResult:
        return await self.modify_thread(thread_id, remove=["INBOX"])

    async def trash(self, thread_id: str) -> OperationResult:
        return await self.modify_thread(thread_id, add=["TRASH"], remove=["INBOX"])

    async def mark_read(self, thread_id: str) -> OperationResult:
        return await self.modify_thread(thread_id, remove=["UNREAD"])

    async def mark_unread(self, thread_id: str) -> OperationResult:
        return await self.modify_thread(thread_id, add=["UNREAD"])

    # Sending

    def _raw_message(self, message: OutgoingMessage) -> dict[str, Any]:
        body: dict[str, Any] = {"raw": mapper.build_raw(message, sender=self.credential.email)}
        if message.thread_id:
            body["threadId"] = message.thread_id
        return body

    async def send(self, message: OutgoingMessage) -> SendResult:
        result = await self._mutate("/messages/send", method="POST", json=self._raw_message(message))
        logger.info(f"Sent message {result.get('id')} from {self.credential.email}")
        return SendResult.ok(message_id=result.get("id"), thread_id=result.get("threadId"))

    async def create_draft(self, message: OutgoingMessage) -> DraftResult:
        result = await self._mutate("/drafts", method="POST", json={"message": self._raw_message(message)})
        draft_message = result.get("message") or {}
        return DraftResult.ok(
            draft_id=result.get("id"),
            message_id=draft_message.get("id"),
            thread_id=draft_message.get("threadId"),
        )

    async def update_draft(self, draft_id: str, message: OutgoingMessage) -> DraftResult:
        result = await self._mutate(
            f"/drafts/{draft_id}",
            method="PUT",
            json={"id": draft_id, "message": self._raw_message(message)},
        )
        draft_message = result.get("message") or {}
        return DraftResult.ok(
            draft_id=result.get("id", draft_id),
            message_id=draft_message.get("id"),
            thread_id=draft_message.get("threadId"),
        )

    async def send_draft(self, draft_id: str) -> SendResult:
        result = await self._mutate("/drafts/send", method="POST", json={"id": draft_id})
        return SendResult.ok(message_id=result.get("id"), thread_id=result.get("threadId"))

    async def delete_draft(self, draft_id: str) -> OperationResult:
        await self._mutate(f"/drafts/{draft_id}", method="DELETE")
        return OperationResult.ok()

    # Attachments

    async def list_attachments(self, thread_id: str) -> list[Attachment]:
        return [a for m in await self.read_thread(thread_id) for a in m.attachments]

    async def download_attachment(self, message_id: str, attachment_id: str) -> AttachmentContent:
        result = await self._mutate(f"/messages/{message_id}/attachments/{attachment_id}")
        data = mapper.to_standard_base64(result.get("data") or "")
        return AttachmentContent(data=data, size=result.get("size") or 0)

    async def add_attachment(self, draft_id: str, filename: str, mime_type: str, data: bytes) -> OperationResult:
        # Gmail drafts are immutable MIME blobs: fetch, extend, replace
        draft = await self._mutate(f"/drafts/{draft_id}", params={"format": "raw"})
        draft_message = draft.get("message") or {}
        if not draft_message.get("raw"):
            raise NotFoundError(f"Draft {draft_id} has no message content")

        mime = mapper.decode_raw(draft_message["raw"])
        maintype, _, subtype = mime_type.partition("/")
        mime.add_attachment(data, maintype=maintype, subtype=subtype or "octet-stream", filename=filename)

        message: dict[str, Any] = {"raw": mapper.encode_raw(mime)}
        if draft_message.get("threadId"):
            message["threadId"] = draft_message["threadId"]
        await self._mutate(f"/drafts/{draft_id}", method="PUT", json={"id": draft_id, "message": message})
        logger.info(f"Attached {filename} to draft {draft_id}")
        return OperationResult.ok()

    # Contacts

    async def search_contacts(self, query: str, limit: int) -> list[Contact]:
        result = await people_request(
            self.credential.access_token,
            "/people:searchContacts",
            params={"query": query, "readMask": "names,emailAddresses", "pageSize": limit},
            client=self.client,
            settings=self.settings,
        )
        if not result:
            return []
        contacts = [mapper.to_contact(r.get("person") or {}) for r in result.get("results") or []]
        return [c for c in contacts if c.email]
