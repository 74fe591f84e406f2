"""Microsoft Graph implementation of EmailBackend.

Graph has conversations instead of threads and folders instead of labels. A
conversation has no folder of its own, so every thread-level mutation first
resolves the conversation to its message ids and then updates each message.
Graph rejects ``$filter`` on ``conversationId``, so that resolution is a
client-side filter over the most recent messages.
"""

from __future__ import annotations

import base64
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
from mailbridge.domain.errors import AuthError, NotFoundError, UnsupportedOperationError
from mailbridge.infrastructure.email.providers.graph import mapper
from mailbridge.infrastructure.http.rest import graph_request
from mailbridge.infrastructure.settings import Settings, get_settings

SUMMARY_FIELDS = "id,conversationId,subject,from,receivedDateTime,bodyPreview,isRead"
MESSAGE_FIELDS = (
    "id,conversationId,subject,from,toRecipients,ccRecipients,receivedDateTime,bodyPreview,body,internetMessageId"
)
ATTACHMENT_FIELDS = "id,name,contentType,size,isInline"

NO_MESSAGES = "No messages found in conversation"


class GraphBackend(EmailBackend):
    name = "msgraph"

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

    async def _conversation_messages(self, conversation_id: str, select: str) -> list[dict[str, Any]]:
        result = await self._get(
            "/me/messages",
            params={
                "$top": self.settings.graph_conversation_scan,
                "$select": select,
                "$orderby": "receivedDateTime desc",
            },
        )
        if not result:
            return []
        return [m for m in result.get("value") or [] if m.get("conversationId") == conversation_id]

    async def thread_message_ids(self, thread_id: str) -> list[str]:
        return [m["id"] for m in await self._conversation_messages(thread_id, "id,conversationId")]

    async def _require_message_ids(self, thread_id: str) -> list[str]:
        message_ids = await self.thread_message_ids(thread_id)
        if not message_ids:
            raise NotFoundError(NO_MESSAGES)
        return message_ids

    async def _update_messages(self, thread_id: str, patch: dict[str, Any]) -> OperationResult:
        for message_id in await self._require_message_ids(thread_id):
            await self._mutate(f"/me/messages/{message_id}", method="PATCH", json=patch)
        return OperationResult.ok()

    async def well_known_folder(self, name: str) -> Label:
        folder = await self._mutate(f"/me/mailFolders/{name}")
        return mapper.to_label(folder)

    async def _move_conversation(self, thread_id: str, folder_name: str) -> OperationResult:
        message_ids = await self._require_message_ids(thread_id)
        folder = await self.well_known_folder(folder_name)
        for message_id in message_ids:
            await self._mutate(f"/me/messages/{message_id}/move", method="POST", json={"destinationId": folder.id})
        logger.debug(f"Moved {len(message_ids)} messages of {thread_id} to {folder.name}")
        return OperationResult.ok()

    # Inbox / search / read

    async def list_inbox(self, limit: int) -> list[ThreadSummary]:
        result = await self._get(
            "/me/mailFolders/Inbox/messages",
            params={"$top": limit, "$select": SUMMARY_FIELDS},
        )
        if not result:
            return []
        return mapper.group_conversations(result.get("value") or [], limit)

    async def search(self, query: str, limit: int, include_done: bool) -> list[ThreadSummary]:
        path = "/me/messages" if include_done else "/me/mailFolders/Inbox/messages"
        result = await self._get(path, params={"$search": f'"{query}"', "$top": limit, "$select": SUMMARY_FIELDS})
        if not result:
            return []
        return mapper.group_conversations(result.get("value") or [], limit)

    async def read_thread(self, thread_id: str) -> list[Message]:
        messages = await self._conversation_messages(thread_id, MESSAGE_FIELDS)
        if not messages:
            # Callers sometimes hold a message id rather than a conversation id
            try:
                single = await self._get(f"/me/messages/{thread_id}", params={"$select": MESSAGE_FIELDS})
            except NotFoundError:
                single = None
            messages = [single] if single else []
        messages.sort(key=lambda m: m.get("receivedDateTime") or "")
        return [mapper.to_message(m) for m in messages]

    # Folders

    async def list_labels(self) -> list[Label]:
        result = await self._get("/me/mailFolders", params={"$top": 100})
        if not result:
            return []
        return [mapper.to_label(f) for f in result.get("value") or []]

    async def get_thread_labels(self, thread_id: str) -> list[Label]:
        messages = await self._conversation_messages(thread_id, "id,conversationId,parentFolderId")
        folder_ids = list(dict.fromkeys(m["parentFolderId"] for m in messages if m.get("parentFolderId")))
        if not folder_ids:
            return []
        folders = {f.id: f for f in await self.list_labels()}
        return [folders.get(fid, Label(id=fid, name=fid, type="folder")) for fid in folder_ids]

    async def add_label(self, thread_id: str, label_id: str) -> OperationResult:
        raise UnsupportedOperationError("Adding labels is not yet supported for Microsoft accounts")

    async def remove_label(self, thread_id: str, label_id: str) -> OperationResult:
        raise UnsupportedOperationError("Removing folder labels is not yet supported for Microsoft accounts")

    async def star(self, thread_id: str) -> OperationResult:
        return await self._update_messages(thread_id, {"flag": {"flagStatus": "flagged"}})

    async def unstar(self, thread_id: str) -> OperationResult:
        return await self._update_messages(thread_id, {"flag": {"flagStatus": "notFlagged"}})

    async def list_starred(self, limit: int) -> list[ThreadRef]:
        result = await self._get(
            "/me/messages",
            params={
                "$filter": "flag/flagStatus eq 'flagged'",
                "$select": "id,conversationId",
                "$top": limit,
            },
        )
        if not result:
            return []
        conversation_ids = dict.fromkeys(m["conversationId"] for m in result.get("value") or [] if m.get("conversationId"))
        return [ThreadRef(id=c) for c in list(conversation_ids)[:limit]]

    # Archive / trash / read status

    async def archive(self, thread_id: str) -> OperationResult:
        return await self._move_conversation(thread_id, "archive")

    async def trash(self, thread_id: str) -> OperationResult:
        return await self._move_conversation(thread_id, "deleteditems")

    async def mark_read(self, thread_id: str) -> OperationResult:
        return await self._update_messages(thread_id, {"isRead": True})

    async def mark_unread(self, thread_id: str) -> OperationResult:
        return await self._update_messages(thread_id, {"isRead": False})

    # Sending

    async def send(self, message: OutgoingMessage) -> SendResult:
        await self._mutate(
            "/me/sendMail",
            method="POST",
            json={"message": mapper.to_graph_message(message), "saveToSentItems": True},
        )
        logger.info(f"Sent message from {self.credential.email}")
        # sendMail answers 202 with no body, so there is no message id to report
        return SendResult.ok(thread_id=message.thread_id)

    async def create_draft(self, message: OutgoingMessage) -> DraftResult:
        result = await self._mutate("/me/messages", method="POST", json=mapper.to_graph_message(message))
        return DraftResult.ok(
            draft_id=result.get("id"),
            message_id=result.get("id"),
            thread_id=result.get("conversationId"),
        )

    async def update_draft(self, draft_id: str, message: OutgoingMessage) -> DraftResult:
        result = await self._mutate(f"/me/messages/{draft_id}", method="PATCH", json=mapper.to_graph_message(message))
        return DraftResult.ok(
            draft_id=draft_id,
            message_id=result.get("id", draft_id),
            thread_id=result.get("conversationId"),
        )

    async def send_draft(self, draft_id: str) -> SendResult:
        await self._mutate(f"/me/messages/{draft_id}/send", method="POST")
        return SendResult.ok(message_id=draft_id)

    async def delete_draft(self, draft_id: str) -> OperationResult:
        await self._mutate(f"/me/messages/{draft_id}", method="DELETE")
        return OperationResult.ok()

    # Replies

    async def _reply_draft(self, original: Message, message: OutgoingMessage) -> dict[str, Any]:
        # createReply keeps the draft in the original conversation; the patch sets our recipients and body
        draft = await self._mutate(f"/me/messages/{original.id}/createReply", method="POST")
        patched = await self._mutate(
            f"/me/messages/{draft['id']}", method="PATCH", json=mapper.to_graph_message(message)
        )
        return {**draft, **patched}

    async def send_reply(self, original: Message, message: OutgoingMessage) -> SendResult:
        draft = await self._reply_draft(original, message)
        await self._mutate(f"/me/messages/{draft['id']}/send", method="POST")
        logger.info(f"Sent reply to {original.id} from {self.credential.email}")
        return SendResult.ok(message_id=draft["id"], thread_id=draft.get("conversationId") or original.thread_id)

    async def create_reply_draft(self, original: Message, message: OutgoingMessage) -> DraftResult:
        draft = await self._reply_draft(original, message)
        return DraftResult.ok(
            draft_id=draft["id"],
            message_id=draft["id"],
            thread_id=draft.get("conversationId") or original.thread_id,
        )

    # Attachments

    async def list_attachments(self, thread_id: str) -> list[Attachment]:
        messages = await self._conversation_messages(thread_id, "id,conversationId,hasAttachments")
        attachments: list[Attachment] = []
        for message in messages:
            if not message.get("hasAttachments"):
                continue
            result = await self._get(
                f"/me/messages/{message['id']}/attachments", params={"$select": ATTACHMENT_FIELDS}
            )
            for raw in (result or {}).get("value") or []:
                attachments.append(mapper.to_attachment(raw, message["id"], thread_id))
        return attachments

    async def download_attachment(self, message_id: str, attachment_id: str) -> AttachmentContent:
        result = await self._mutate(f"/me/messages/{message_id}/attachments/{attachment_id}")
        return AttachmentContent(data=result.get("contentBytes") or "", size=result.get("size") or 0)

    async def add_attachment(self, draft_id: str, filename: str, mime_type: str, data: bytes) -> OperationResult:
        await self._mutate(
            f"/me/messages/{draft_id}/attachments",
            method="POST",
            json={
                "@odata.type": "#microsoft.graph.fileAttachment",
                "name": filename,
                "contentType": mime_type,
                "contentBytes": base64.b64encode(data).decode("ascii"),
            },
        )
        logger.info(f"Attached {filename} to draft {draft_id}")
        return OperationResult.ok()

    # Contacts

    async def search_contacts(self, query: str, limit: int) -> list[Contact]:
        result = await self._get("/me/people", params={"$search": f'"{query}"', "$top": limit})
        if not result:
            return []
        contacts = [mapper.to_contact(p) for p in result.get("value") or []]
        return [c for c in contacts if c.email]
