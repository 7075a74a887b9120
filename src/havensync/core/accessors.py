"""
Resource accessors: one coroutine per HavenMind resource.

Each accessor hides the mock/live choice from its caller. The choice is made
once, when the client is constructed, from ``Settings.api_base_url``.

Live payloads are validated against the wire models. Dashboard, document and
account records are checked strictly and a record that does not fit raises
PayloadError for that resource. Chat sessions are parsed leniently (see
``ChatSession``) so one odd session never hides the whole history.
"""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Type, TypeVar, Union

import aiofiles
from pydantic import BaseModel, TypeAdapter, ValidationError

from .config import Settings
from .exceptions import PayloadError
from .mock_data import MockDataProvider
from .models import (
    ActivityItem,
    ChangePasswordPayload,
    ChatMessage,
    ChatSession,
    DocumentViewLink,
    ProjectSummary,
    UpdateUserPayload,
    UsageMetric,
    UserDocument,
)
from .sessions import reconstruct, to_chat_message
from .transport import RequestTransport

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass
class UploadFile:
    """In-memory file handed to ``upload_document``."""

    filename: str
    content: bytes
    mime_type: str = DEFAULT_MIME_TYPE

    @property
    def size(self) -> int:
        return len(self.content)


async def load_upload_file(path: Union[str, Path]) -> UploadFile:
    """Read a file from disk into an UploadFile, guessing its MIME type."""
    p = Path(path).expanduser()
    async with aiofiles.open(p, "rb") as f:
        content = await f.read()
    mime, _ = mimetypes.guess_type(p.name)
    return UploadFile(filename=p.name, content=content, mime_type=mime or DEFAULT_MIME_TYPE)


def _parse(model: Type[M], payload: Any, resource: str) -> M:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise PayloadError(f"Unexpected {resource} payload: {e}") from e


def _parse_list(model: Type[M], payload: Any, resource: str) -> List[M]:
    try:
        return TypeAdapter(List[model]).validate_python(payload or [])
    except ValidationError as e:
        raise PayloadError(f"Unexpected {resource} payload: {e}") from e


class ResourceClient:
    """Resource accessors over either the mock dataset or the live API."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[RequestTransport] = None,
        mock: Optional[MockDataProvider] = None,
    ):
        self.settings = settings
        self.is_mock = settings.is_mock
        self._transport = transport
        self.mock = mock or MockDataProvider()
        self.documents_path = settings.documents_path
        logger.info("Resource client in %s mode", "mock" if self.is_mock else "live")

    @property
    def transport(self) -> RequestTransport:
        """Live transport, created on first use."""
        if self._transport is None:
            self._transport = RequestTransport(self.settings)
        return self._transport

    # ----- dashboard -----

    async def fetch_usage_metrics(self) -> List[UsageMetric]:
        if self.is_mock:
            return await self.mock.usage_metrics()
        payload = await self.transport.request("/analytics/usage", "GET")
        return _parse_list(UsageMetric, payload, "usage metrics")

    async def fetch_project_summaries(self) -> List[ProjectSummary]:
        if self.is_mock:
            return await self.mock.project_summaries()
        payload = await self.transport.request("/projects", "GET")
        return _parse_list(ProjectSummary, payload, "projects")

    async def fetch_activity_feed(self) -> List[ActivityItem]:
        if self.is_mock:
            return await self.mock.activity_feed()
        payload = await self.transport.request("/activity", "GET")
        return _parse_list(ActivityItem, payload, "activity")

    # ----- chat -----

    async def fetch_chat_history(self) -> List[ChatMessage]:
        """Load the user's sessions and flatten them into chat turns."""
        if self.is_mock:
            return await self.mock.chat_history()
        payload = await self.transport.request("/users/me/sessions", "GET")
        if payload is not None and not isinstance(payload, dict):
            raise PayloadError("Chat history response is not an object")
        sessions = _parse_list(ChatSession, (payload or {}).get("sessions"), "chat history")
        return reconstruct(sessions)

    async def send_chat_message(self, message: str) -> ChatMessage:
        """Send a prompt and return the complete assistant reply."""
        if self.is_mock:
            return await self.mock.send_chat_message(message)
        payload = await self.transport.request("/ai/generate", "POST", {"prompt": message})
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise PayloadError("Chat response is missing its data record")
        return to_chat_message(_parse(ChatSession, data, "chat response"), "assistant")

    # ----- documents -----

    async def fetch_documents(self) -> List[UserDocument]:
        if self.is_mock:
            return await self.mock.documents()
        payload = await self.transport.request(self.documents_path, "GET")
        return _parse_list(UserDocument, payload, "documents")

    async def upload_document(self, file: Union[UploadFile, str, Path]) -> UserDocument:
        """
        Upload one file as multipart form data.

        Args:
            file: An UploadFile or a path to read from disk

        Returns:
            The document record assigned by the server
        """
        if not isinstance(file, UploadFile):
            file = await load_upload_file(file)
        if self.is_mock:
            return await self.mock.upload_document(file.filename, file.size, file.mime_type)
        payload = await self.transport.request(
            self.documents_path,
            "POST",
            files={"file": (file.filename, file.content, file.mime_type)},
        )
        return _parse(UserDocument, payload, "document upload")

    async def fetch_document_view_url(self, document_id: str) -> DocumentViewLink:
        if self.is_mock:
            return await self.mock.document_view_url(document_id)
        payload = await self.transport.request(f"{self.documents_path}/{document_id}/view", "GET")
        return _parse(DocumentViewLink, payload or {}, "document view link")

    # ----- account -----

    async def update_user_profile(self, payload: UpdateUserPayload) -> None:
        if self.is_mock:
            await self.mock.update_user_profile()
            return
        await self.transport.request("/users/me", "PATCH", payload.to_wire())

    async def change_user_password(self, payload: ChangePasswordPayload) -> None:
        if self.is_mock:
            await self.mock.change_user_password()
            return
        await self.transport.request("/users/me/change-password", "POST", payload.to_wire())

    async def aclose(self) -> None:
        if self._transport is not None:
            await self._transport.aclose()
