"""Built-in mock dataset served when no API base URL is configured."""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from .models import (
    ActivityItem,
    ChatMessage,
    DocumentViewLink,
    ProjectSummary,
    UsageMetric,
    UserDocument,
)

# Artificial latency per resource, in milliseconds
MOCK_DELAYS_MS: Dict[str, int] = {
    "usage": 300,
    "projects": 320,
    "activity": 280,
    "chat_history": 200,
    "chat_send": 600,
    "profile_update": 300,
    "password_change": 300,
    "documents": 250,
    "document_upload": 500,
    "document_view": 220,
}

MOCK_ASSISTANT_REPLY = (
    "Here’s a mocked HavenMind response. In production this is where we would "
    "summarize the task, recommend trusted pros, or log the action to the Home Journal."
)

MOCK_VIEW_URL_TEMPLATE = "https://mock.havenmind.invalid/documents/{id}"

_LOADED_AT = datetime.now(timezone.utc)

USAGE: Tuple[UsageMetric, ...] = (
    UsageMetric(id="tasks", label="Upcoming tasks", value="32", delta=18),
    UsageMetric(id="overdue", label="Overdue items", value="3", delta=-25),
    UsageMetric(id="documents", label="Documents indexed", value="214", delta=9),
    UsageMetric(id="health", label="Avg. Home Health Score", value="92", delta=4),
)

PROJECTS: Tuple[ProjectSummary, ...] = (
    ProjectSummary(
        id="maple",
        name="Maple Street Craftsman",
        status="online",
        updated_at="HVAC tune-up · 2h ago",
        owner="Henderson family",
    ),
    ProjectSummary(
        id="lakeside",
        name="Lakeside Duplex",
        status="degraded",
        updated_at="Roof leak check · 8m ago",
        owner="Lakeside PM",
    ),
    ProjectSummary(
        id="loft",
        name="Downtown Loft",
        status="paused",
        updated_at="Renovation hold · 45m ago",
        owner="Northwind Realty",
    ),
)

ACTIVITY: Tuple[ActivityItem, ...] = (
    ActivityItem(
        id="maint-1",
        title="Water heater flushed",
        description="Receipt added to the Home Journal for Maple Street",
        timestamp="Today · 10:42 AM",
        category="maintenance",
    ),
    ActivityItem(
        id="alert-1",
        title="HVAC filter overdue",
        description="Lakeside Duplex is 12 days past the recommended change",
        timestamp="Today · 9:17 AM",
        category="alert",
    ),
    ActivityItem(
        id="journal-1",
        title="Inspection uploaded",
        description="New roof report attached to Downtown Loft",
        timestamp="Yesterday · 6:03 PM",
        category="journal",
    ),
)

CHAT: Tuple[ChatMessage, ...] = (
    ChatMessage(
        id="intro-1",
        role="assistant",
        content=(
            "Hi! I’m HavenMind. Ask me what to prep for this season, which warranties "
            "are expiring, or how your Home Health Score is trending."
        ),
        created_at=_LOADED_AT,
    ),
)

DOCUMENTS: Tuple[UserDocument, ...] = (
    UserDocument(
        id="doc-roof-2024",
        original_name="roof-inspection-2024.pdf",
        size=2_457_600,
        mime_type="application/pdf",
        created_at=_LOADED_AT,
        status="COMPLETE",
    ),
    UserDocument(
        id="doc-furnace-manual",
        original_name="furnace-manual.pdf",
        size=845_312,
        mime_type="application/pdf",
        created_at=_LOADED_AT,
        status="PROCESSING",
    ),
)

Sleep = Callable[[float], Awaitable[None]]


class MockDataProvider:
    """Serves the fixed dataset after a per-resource artificial delay.

    The dataset is shared and never modified. Reads return fresh list
    containers over the shared records; mutations mint new records (new id,
    current timestamp) so repeated calls stay distinguishable. Chat turns sent
    and documents uploaded through a provider are listed by that provider
    afterwards.
    """

    def __init__(self, sleep: Optional[Sleep] = None, delays_ms: Optional[Dict[str, int]] = None):
        self._sleep = sleep or asyncio.sleep
        self.delays_ms = dict(MOCK_DELAYS_MS)
        if delays_ms:
            self.delays_ms.update(delays_ms)
        self._uploaded: List[UserDocument] = []
        self._sent: List[ChatMessage] = []

    async def _delay(self, resource: str) -> None:
        await self._sleep(self.delays_ms[resource] / 1000)

    async def usage_metrics(self) -> List[UsageMetric]:
        await self._delay("usage")
        return list(USAGE)

    async def project_summaries(self) -> List[ProjectSummary]:
        await self._delay("projects")
        return list(PROJECTS)

    async def activity_feed(self) -> List[ActivityItem]:
        await self._delay("activity")
        return list(ACTIVITY)

    async def chat_history(self) -> List[ChatMessage]:
        await self._delay("chat_history")
        return [*CHAT, *self._sent]

    async def send_chat_message(self, message: str) -> ChatMessage:
        await self._delay("chat_send")
        now = datetime.now(timezone.utc)
        reply = ChatMessage(
            id=str(uuid.uuid4()),
            role="assistant",
            content=MOCK_ASSISTANT_REPLY,
            created_at=now,
        )
        self._sent.append(ChatMessage(id=f"{reply.id}-prompt", role="user", content=message, created_at=now))
        self._sent.append(reply)
        return reply

    async def documents(self) -> List[UserDocument]:
        await self._delay("documents")
        return [*reversed(self._uploaded), *DOCUMENTS]

    async def upload_document(self, filename: str, size: int, mime_type: str) -> UserDocument:
        await self._delay("document_upload")
        document = UserDocument(
            id=str(uuid.uuid4()),
            original_name=filename,
            size=size,
            mime_type=mime_type,
            created_at=datetime.now(timezone.utc),
            status="UPLOADED",
        )
        self._uploaded.append(document)
        return document

    async def document_view_url(self, document_id: str) -> DocumentViewLink:
        await self._delay("document_view")
        ready = any(d.id == document_id and d.status == "COMPLETE" for d in DOCUMENTS)
        if ready:
            return DocumentViewLink(url=MOCK_VIEW_URL_TEMPLATE.format(id=document_id))
        return DocumentViewLink()

    async def update_user_profile(self) -> None:
        await self._delay("profile_update")

    async def change_user_password(self) -> None:
        await self._delay("password_change")
