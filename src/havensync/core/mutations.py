"""
Mutation controllers for user-initiated writes.

- DocumentUploadController: upload, merge the confirmed document, invalidate.
- DocumentViewController: per-document "open" requests with independent state.
- ChatController: optimistic user turn, then the assistant reply.
- AccountController: profile update and password change.
"""

from __future__ import annotations

import itertools
import logging
import uuid
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from .accessors import ResourceClient, UploadFile
from .cache import CHAT_KEY, DOCUMENTS_KEY, QueryCache
from .exceptions import SoftUnavailable, SyncError, TransportError
from .logging import EventLogger
from .models import (
    ChangePasswordPayload,
    ChatMessage,
    UpdateUserPayload,
    UserDocument,
    advance_status,
)

logger = logging.getLogger(__name__)

DOCUMENT_NOT_READY = "Document is not available yet. Try again soon."
DOCUMENT_OPEN_FAILED = "Unable to open document"


def error_message(error: BaseException, fallback: str = "Unexpected API error") -> str:
    """Text to show the user for a failed operation."""
    if isinstance(error, TransportError):
        return error.message
    return str(error) or fallback


def merge_document(previous: Optional[List[UserDocument]], document: UserDocument) -> List[UserDocument]:
    """Put ``document`` first, dropping any older entry with the same id."""
    previous = previous or []
    for entry in previous:
        if entry.id == document.id:
            document = advance_status(entry, document)
            break
    return [document, *(entry for entry in previous if entry.id != document.id)]


def reconcile_documents(
    previous: Optional[List[UserDocument]],
    fresh: List[UserDocument],
) -> List[UserDocument]:
    """Adopt the server's list while keeping every known status from moving backwards."""
    known = {entry.id: entry for entry in previous or []}
    return [advance_status(known[doc.id], doc) if doc.id in known else doc for doc in fresh]


class _Mutation:
    """Pending/error bookkeeping shared by the controllers."""

    name = "mutation"

    def __init__(self, event_logger: Optional[EventLogger] = None):
        self.event_logger = event_logger or EventLogger()
        self._pending = 0
        self.error: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self._pending > 0

    async def _started(self, **details) -> None:
        self._pending += 1
        self.error = None
        await self.event_logger.log_mutation(self.name, "started", details)

    async def _succeeded(self, **details) -> None:
        self._pending -= 1
        await self.event_logger.log_mutation(self.name, "succeeded", details)

    async def _failed(self, error: BaseException, **details) -> None:
        self._pending -= 1
        self.error = error_message(error)
        logger.warning("%s failed: %s", self.name, self.error)
        await self.event_logger.log_mutation(self.name, "failed", {"error": self.error, **details})


class DocumentUploadController(_Mutation):
    """Uploads documents and merges confirmed results into the document list.

    Nothing is written before the server answers because the document id is
    assigned server side. The list is invalidated after every attempt.
    """

    name = "document_upload"

    def __init__(self, resources: ResourceClient, cache: QueryCache, event_logger: Optional[EventLogger] = None):
        super().__init__(event_logger)
        self.resources = resources
        self.cache = cache

    async def upload(self, file: Union[UploadFile, str, Path]) -> UserDocument:
        filename = file.filename if isinstance(file, UploadFile) else Path(file).name
        await self._started(filename=filename)
        try:
            document = await self.resources.upload_document(file)
        except Exception as e:
            await self._failed(e, filename=filename)
            raise
        else:
            self.cache.write(DOCUMENTS_KEY, lambda prev: merge_document(prev, document))
            await self._succeeded(document_id=document.id, status=document.status)
            return document
        finally:
            self.cache.invalidate(DOCUMENTS_KEY)


@dataclass(frozen=True)
class ViewState:
    """State of the latest "open" request for one document."""

    pending: bool = False
    error: Optional[str] = None
    advisory: Optional[SoftUnavailable] = None
    url: Optional[str] = None
    token: int = 0


class DocumentViewController:
    """Fetches view links, tracking pending/error state per document id.

    Requests for different documents never share state. A newer request for
    the same document takes over its slot: the older request still returns
    its own result to its caller but no longer updates the slot.
    """

    def __init__(
        self,
        resources: ResourceClient,
        opener: Optional[Callable[[str], None]] = None,
        event_logger: Optional[EventLogger] = None,
    ):
        self.resources = resources
        self.opener = opener
        self.event_logger = event_logger or EventLogger()
        self._slots: Dict[str, ViewState] = {}
        self._tokens = itertools.count(1)

    def state(self, document_id: str) -> ViewState:
        return self._slots.get(document_id, ViewState())

    def is_pending(self, document_id: str) -> bool:
        return self.state(document_id).pending

    def _settle(self, document_id: str, token: int, **fields) -> None:
        current = self._slots.get(document_id)
        if current is None or current.token != token:
            logger.debug("Superseded view request for %s settled", document_id)
            return
        self._slots[document_id] = replace(current, pending=False, **fields)

    async def open(self, document_id: str) -> Optional[str]:
        """
        Request a view URL for one document.

        Returns:
            The URL, or None when the document is not ready or the call failed
            (see ``state(document_id)`` for the advisory or error)
        """
        token = next(self._tokens)
        self._slots[document_id] = ViewState(pending=True, token=token)
        try:
            link = await self.resources.fetch_document_view_url(document_id)
        except SyncError as e:
            message = error_message(e, DOCUMENT_OPEN_FAILED)
            self._settle(document_id, token, error=message)
            await self.event_logger.log_error("document_view", message, {"document_id": document_id})
            return None

        if not link.url:
            self._settle(document_id, token, advisory=SoftUnavailable(DOCUMENT_NOT_READY))
            return None

        self._settle(document_id, token, url=link.url)
        if self.opener is not None:
            self.opener(link.url)
        return link.url


class ChatController(_Mutation):
    """Sends chat prompts with an optimistic user turn in the cached history."""

    name = "chat_send"

    def __init__(self, resources: ResourceClient, cache: QueryCache, event_logger: Optional[EventLogger] = None):
        super().__init__(event_logger)
        self.resources = resources
        self.cache = cache

    async def send(self, text: str) -> ChatMessage:
        """
        Send one prompt.

        The user turn is appended with ``is_optimistic=True`` before the call.
        On success it is confirmed and the assistant reply appended after it;
        on failure it is removed again and the error re-raised. The history is
        invalidated either way, so a list fetched while the send was in flight
        is replaced by the server's.

        Raises:
            ValueError: If ``text`` is blank
        """
        text = text.strip()
        if not text:
            raise ValueError("Message is empty")

        optimistic = ChatMessage(
            id=f"optimistic-{uuid.uuid4()}",
            role="user",
            content=text,
            is_optimistic=True,
        )
        self.cache.write(CHAT_KEY, lambda prev: [*(prev or []), optimistic])
        await self._started(message_id=optimistic.id)

        def without_optimistic(prev: Optional[List[ChatMessage]]) -> List[ChatMessage]:
            return [m for m in prev or [] if m.id != optimistic.id]

        try:
            reply = await self.resources.send_chat_message(text)
        except Exception as e:
            self.cache.write(CHAT_KEY, without_optimistic)
            await self._failed(e, message_id=optimistic.id)
            raise
        else:
            # Re-append the confirmed turn even if a concurrent history fetch dropped it
            confirmed = optimistic.model_copy(update={"is_optimistic": False})
            self.cache.write(CHAT_KEY, lambda prev: [*without_optimistic(prev), confirmed, reply])
            await self._succeeded(message_id=reply.id)
            return reply
        finally:
            self.cache.invalidate(CHAT_KEY)


class AccountController(_Mutation):
    """Profile and password changes."""

    name = "account"

    def __init__(self, resources: ResourceClient, event_logger: Optional[EventLogger] = None):
        super().__init__(event_logger)
        self.resources = resources

    async def update_profile(self, name: Optional[str] = None) -> None:
        await self._started(action="update_profile")
        try:
            await self.resources.update_user_profile(UpdateUserPayload(name=name))
        except Exception as e:
            await self._failed(e, action="update_profile")
            raise
        await self._succeeded(action="update_profile")

    async def change_password(self, current_password: str, new_password: str) -> None:
        await self._started(action="change_password")
        try:
            await self.resources.change_user_password(
                ChangePasswordPayload(current_password=current_password, new_password=new_password)
            )
        except Exception as e:
            await self._failed(e, action="change_password")
            raise
        await self._succeeded(action="change_password")
