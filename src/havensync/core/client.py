from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Union, runtime_checkable

import httpx

from .accessors import ResourceClient, UploadFile
from .cache import (
    ACTIVITY_KEY,
    CHAT_KEY,
    DOCUMENTS_KEY,
    PROJECTS_KEY,
    USAGE_KEY,
    InMemoryQueryCache,
)
from .config import Settings
from .exceptions import NotAuthenticatedError
from .logging import get_event_logger
from .mock_data import MockDataProvider
from .models import ChatMessage, DashboardSnapshot, UserDocument
from .mutations import (
    AccountController,
    ChatController,
    DocumentUploadController,
    DocumentViewController,
    reconcile_documents,
)
from .transport import RequestTransport

logger = logging.getLogger(__name__)


@runtime_checkable
class AuthState(Protocol):
    """What the sync layer needs from the authentication provider."""

    is_authenticated: bool
    user_name: Optional[str]


@dataclass
class StaticAuth:
    """Fixed auth state, for command line use and tests."""

    is_authenticated: bool = True
    user_name: Optional[str] = None


class SyncClient:
    """Entry point for UI code: cached reads plus the mutation controllers.

    Reads are disabled while the user is signed out: they return None without
    touching the network or the mock dataset. Writes raise
    NotAuthenticatedError instead.
    """

    def __init__(
        self,
        settings: Settings,
        auth: Optional[AuthState] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        mock: Optional[MockDataProvider] = None,
        cache: Optional[InMemoryQueryCache] = None,
        opener: Optional[Callable[[str], None]] = None,
    ):
        self.settings = settings
        self.auth = auth or StaticAuth()
        self.event_logger = get_event_logger(settings.log_dir)
        transport = None
        if not settings.is_mock:
            transport = RequestTransport(settings, http_client=http_client, event_logger=self.event_logger)
        self.resources = ResourceClient(settings, transport=transport, mock=mock)
        self.cache = cache or InMemoryQueryCache(maxsize=settings.cache_max_entries)

        self.uploads = DocumentUploadController(self.resources, self.cache, self.event_logger)
        self.views = DocumentViewController(self.resources, opener=opener, event_logger=self.event_logger)
        self.chat = ChatController(self.resources, self.cache, self.event_logger)
        self.account = AccountController(self.resources, self.event_logger)

    @property
    def is_mock(self) -> bool:
        return self.resources.is_mock

    @property
    def enabled(self) -> bool:
        return bool(self.auth.is_authenticated)

    def greeting(self) -> str:
        return f"Hey {self.auth.user_name or 'there'},"

    def _require_auth(self) -> None:
        if not self.enabled:
            raise NotAuthenticatedError("Sign in to make changes.")

    # ----- reads -----

    async def dashboard(self, force: bool = False) -> Optional[DashboardSnapshot]:
        """Load usage, projects and activity concurrently through the cache."""
        if not self.enabled:
            return None
        usage, projects, activity = await asyncio.gather(
            self.cache.fetch(USAGE_KEY, self.resources.fetch_usage_metrics, force=force),
            self.cache.fetch(PROJECTS_KEY, self.resources.fetch_project_summaries, force=force),
            self.cache.fetch(ACTIVITY_KEY, self.resources.fetch_activity_feed, force=force),
        )
        return DashboardSnapshot(usage=usage, projects=projects, activity=activity)

    async def chat_history(self, force: bool = False) -> Optional[List[ChatMessage]]:
        if not self.enabled:
            return None
        return await self.cache.fetch(CHAT_KEY, self.resources.fetch_chat_history, force=force)

    async def _load_documents(self) -> List[UserDocument]:
        fresh = await self.resources.fetch_documents()
        return reconcile_documents(self.cache.get(DOCUMENTS_KEY), fresh)

    async def documents(self, force: bool = False) -> Optional[List[UserDocument]]:
        if not self.enabled:
            return None
        return await self.cache.fetch(DOCUMENTS_KEY, self._load_documents, force=force)

    # ----- writes -----

    async def send_chat_message(self, text: str) -> ChatMessage:
        self._require_auth()
        return await self.chat.send(text)

    async def upload_document(self, file: Union[UploadFile, str, Path]) -> UserDocument:
        self._require_auth()
        return await self.uploads.upload(file)

    async def open_document(self, document_id: str) -> Optional[str]:
        self._require_auth()
        return await self.views.open(document_id)

    async def update_profile(self, name: Optional[str] = None) -> None:
        self._require_auth()
        await self.account.update_profile(name)

    async def change_password(self, current_password: str, new_password: str) -> None:
        self._require_auth()
        await self.account.change_password(current_password, new_password)

    # ----- lifecycle -----

    async def aclose(self) -> None:
        await self.cache.settle()
        await self.resources.aclose()

    async def __aenter__(self) -> "SyncClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
