"""Session reconstruction: server chat sessions to a flat message sequence.

The API stores one record per prompt/response exchange. A conversational UI
wants one entry per turn, so each session expands to at most two messages:

    session(prompt="Hi", response="Hello")  ->  [user "Hi", assistant "Hello"]
    session(prompt="",   response="Tip")    ->  [assistant "Tip"]

Everything here is pure: no cache, no network.
"""

from __future__ import annotations

import hashlib
import re
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from .models import ChatMessage, ChatSession, Role

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})[.,](\d+)")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; None when missing or unparseable."""
    if not value:
        return None
    try:
        # fromisoformat on 3.10 only takes 3 or 6 fractional digits
        normalized = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", value.strip())
        parsed = datetime.fromisoformat(normalized.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def session_sort_key(session: ChatSession) -> datetime:
    """Creation time, with missing timestamps sorting first (epoch 0)."""
    return parse_timestamp(session.created_at) or _EPOCH


def session_key(session: ChatSession) -> str:
    """Stable identifier for a session, hashing its content when the id is missing."""
    if session.id:
        return session.id
    material = "\x1f".join([
        session.created_at or "",
        session.prompt or "",
        session.response or session.text or "",
    ])
    return f"session-{hashlib.sha256(material.encode()).hexdigest()[:16]}"


def to_chat_message(payload: ChatSession, fallback_role: Role = "assistant") -> ChatMessage:
    """Map one session-like payload to a ChatMessage.

    Content prefers ``text``, then ``response``, then ``prompt``. Missing ids
    and timestamps are minted fresh, so this is only used for one-off
    payloads such as the reply to a chat send.
    """
    content = next(
        (v for v in (payload.text, payload.response, payload.prompt) if v is not None),
        "",
    )
    return ChatMessage(
        id=payload.id or str(uuid.uuid4()),
        role=payload.chat_role or fallback_role,
        content=content,
        created_at=parse_timestamp(payload.created_at) or datetime.now(timezone.utc),
    )


def session_to_messages(session: ChatSession, key: Optional[str] = None) -> List[ChatMessage]:
    """Expand one session into its user (optional) and assistant messages."""
    key = key or session_key(session)
    created_at = parse_timestamp(session.created_at) or _EPOCH
    messages: List[ChatMessage] = []
    if session.prompt:
        messages.append(ChatMessage(
            id=f"{key}-prompt",
            role="user",
            content=session.prompt,
            created_at=created_at,
        ))
    # The assistant turn is always emitted, even when empty
    response = session.response if session.response is not None else session.text
    messages.append(ChatMessage(
        id=f"{key}-response",
        role="assistant",
        content=response or "",
        created_at=created_at,
    ))
    return messages


def reconstruct(sessions: Iterable[ChatSession]) -> List[ChatMessage]:
    """Flatten sessions into an ordered message list.

    Sessions are ordered by ascending creation time (stable for ties), then
    each contributes prompt before response. Identifiers derive from the
    session identifier, so reconstructing the same input twice yields the
    same ids in the same order.
    """
    ordered = sorted(sessions, key=session_sort_key)
    messages: List[ChatMessage] = []
    seen: Dict[str, int] = {}
    for session in ordered:
        key = session_key(session)
        # Two identical id-less sessions hash alike; suffix the repeats.
        count = seen.get(key, 0)
        seen[key] = count + 1
        if count:
            key = f"{key}-{count + 1}"
        messages.extend(session_to_messages(session, key))
    return messages
