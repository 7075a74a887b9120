from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


Role = Literal["user", "assistant", "system"]
ProjectStatus = Literal["online", "degraded", "paused"]
ActivityCategory = Literal["maintenance", "journal", "alert"]
DocumentStatus = Literal["UPLOADED", "PROCESSING", "COMPLETE", "FAILED"]

# Forward-only order of document states; COMPLETE and FAILED are both final.
DOCUMENT_STATUS_RANK = {
    "UPLOADED": 0,
    "PROCESSING": 1,
    "COMPLETE": 2,
    "FAILED": 2,
}

_SIZE_UNITS = ["B", "KB", "MB", "GB"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    """Base for records exchanged with the API (camelCase on the wire).

    Records are immutable snapshots; use ``model_copy(update=...)`` to derive.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UsageMetric(WireModel):
    id: str
    label: str
    value: str
    delta: float
    helper: Optional[str] = None


class ProjectSummary(WireModel):
    id: str
    name: str
    status: ProjectStatus
    updated_at: str
    owner: str


class ActivityItem(WireModel):
    id: str
    title: str
    description: str
    timestamp: str
    category: ActivityCategory


class ChatMessage(WireModel):
    """A single turn as shown by a conversational UI."""

    id: str
    role: Role
    content: str
    created_at: datetime = Field(default_factory=_now)
    is_optimistic: bool = False


class ChatSession(WireModel):
    """Server storage unit for one prompt/response exchange. Never shown to the UI.

    Fields are loosely typed: an unknown ``role`` or an odd ``createdAt`` must
    not fail the whole history.
    """

    id: Optional[str] = None
    role: Optional[str] = None
    prompt: Optional[str] = None
    response: Optional[str] = None
    text: Optional[str] = None
    session_id: Optional[str] = None
    model: Optional[str] = None
    # Kept raw: the server may omit it or send something unparseable.
    created_at: Optional[str] = None

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, v):
        # Numbers are epoch milliseconds
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            try:
                return datetime.fromtimestamp(v / 1000, tz=timezone.utc).isoformat()
            except (OverflowError, OSError, ValueError):
                return None
        if v is not None and not isinstance(v, str):
            return None
        return v

    @property
    def chat_role(self) -> Optional[Role]:
        """``role`` when it is one the UI understands, else None."""
        return self.role if self.role in get_args(Role) else None


class UserDocument(WireModel):
    id: str
    original_name: str
    size: int
    mime_type: str
    created_at: datetime
    status: DocumentStatus

    @property
    def is_terminal(self) -> bool:
        return self.status in ("COMPLETE", "FAILED")

    @property
    def display_size(self) -> str:
        """Human readable size, e.g. ``"2.4 MB"``."""
        if not self.size:
            return "0 B"
        index = min(int(math.floor(math.log(self.size) / math.log(1024))), len(_SIZE_UNITS) - 1)
        value = self.size / math.pow(1024, index)
        digits = 0 if value >= 10 or index == 0 else 1
        return f"{value:.{digits}f} {_SIZE_UNITS[index]}"


def advance_status(current: UserDocument, incoming: UserDocument) -> UserDocument:
    """Merge two views of the same document without moving its status backwards."""
    if DOCUMENT_STATUS_RANK[incoming.status] < DOCUMENT_STATUS_RANK[current.status]:
        return incoming.model_copy(update={"status": current.status})
    if current.is_terminal and incoming.is_terminal and incoming.status != current.status:
        return incoming.model_copy(update={"status": current.status})
    return incoming


class DocumentViewLink(WireModel):
    url: Optional[str] = None


class UpdateUserPayload(WireModel):
    name: Optional[str] = None


class ChangePasswordPayload(WireModel):
    current_password: str
    new_password: str


class DashboardSnapshot(BaseModel):
    usage: List[UsageMetric]
    projects: List[ProjectSummary]
    activity: List[ActivityItem]
