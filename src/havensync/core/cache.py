"""Shared query cache: latest known value per resource query, with invalidation."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from cachetools import LRUCache

logger = logging.getLogger(__name__)

QueryKey = Tuple[str, ...]
Fetcher = Callable[[], Awaitable[Any]]
Listener = Callable[[QueryKey, "QueryState"], None]

USAGE_KEY: QueryKey = ("usage",)
PROJECTS_KEY: QueryKey = ("projects",)
ACTIVITY_KEY: QueryKey = ("activity",)
CHAT_KEY: QueryKey = ("chat",)
DOCUMENTS_KEY: QueryKey = ("documents",)


@dataclass
class QueryState:
    """Everything the cache knows about one query."""

    value: Any = None
    has_value: bool = False
    is_stale: bool = False
    is_fetching: bool = False
    error: Optional[BaseException] = None
    updated_at: Optional[datetime] = None
    fetcher: Optional[Fetcher] = field(default=None, repr=False)

    @property
    def is_pending(self) -> bool:
        """No data yet and a fetch is running."""
        return not self.has_value and self.is_fetching


class QueryCache(ABC):
    """Interface for the shared cache used by accessors and mutation controllers."""

    @abstractmethod
    def get(self, key: QueryKey) -> Any:
        """Return the cached value for a key, or None."""
        pass

    @abstractmethod
    def write(self, key: QueryKey, value: Any) -> Any:
        """Store a value, or apply an updater ``prev -> new``, and notify listeners."""
        pass

    @abstractmethod
    def invalidate(self, key: QueryKey) -> None:
        """Mark a key stale so the next read fetches it again."""
        pass

    @abstractmethod
    async def fetch(self, key: QueryKey, fetcher: Fetcher, *, force: bool = False) -> Any:
        """Return the fresh cached value or load it with ``fetcher``."""
        pass


class InMemoryQueryCache(QueryCache):
    """In-process cache with listener notification and background re-fetch.

    A failed fetch leaves the last good value in place; the error is recorded
    on the query state and re-raised to the caller. Invalidating a query that
    was fetched before schedules a re-fetch on the running event loop.
    """

    def __init__(self, maxsize: int = 64):
        self._entries: LRUCache = LRUCache(maxsize=maxsize)
        self._listeners: Dict[QueryKey, List[Listener]] = {}
        self._inflight: Dict[QueryKey, asyncio.Task] = {}
        self._refetches: Set[asyncio.Task] = set()

    def _state(self, key: QueryKey) -> QueryState:
        state = self._entries.get(key)
        if state is None:
            state = QueryState()
            self._entries[key] = state
        return state

    def _notify(self, key: QueryKey, state: QueryState) -> None:
        for listener in list(self._listeners.get(key, [])):
            try:
                listener(key, state)
            except Exception:
                logger.exception("Cache listener failed for %s", key)

    def state(self, key: QueryKey) -> QueryState:
        return self._state(key)

    def get(self, key: QueryKey) -> Any:
        state = self._entries.get(key)
        return state.value if state is not None else None

    def write(self, key: QueryKey, value: Any) -> Any:
        state = self._state(key)
        if callable(value):
            value = value(state.value if state.has_value else None)
        state.value = value
        state.has_value = True
        state.is_stale = False
        state.error = None
        state.updated_at = datetime.now(timezone.utc)
        self._notify(key, state)
        return value

    def invalidate(self, key: QueryKey) -> None:
        state = self._entries.get(key)
        if state is None:
            return
        state.is_stale = True
        self._notify(key, state)
        if state.fetcher is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._refetch(key, state.fetcher))
        self._refetches.add(task)
        task.add_done_callback(self._refetches.discard)

    async def _refetch(self, key: QueryKey, fetcher: Fetcher) -> None:
        try:
            await self._start_fetch(key, fetcher)
        except Exception as e:
            # Already recorded on the query state for the UI.
            logger.warning("Background re-fetch of %s failed: %s", key, e)

    async def fetch(self, key: QueryKey, fetcher: Fetcher, *, force: bool = False) -> Any:
        state = self._state(key)
        state.fetcher = fetcher
        if state.has_value and not state.is_stale and not force:
            return state.value
        inflight = self._inflight.get(key)
        if inflight is not None and not force:
            return await inflight
        return await self._start_fetch(key, fetcher)

    async def _start_fetch(self, key: QueryKey, fetcher: Fetcher) -> Any:
        state = self._state(key)
        state.fetcher = fetcher
        state.is_fetching = True
        self._notify(key, state)
        task = asyncio.ensure_future(self._run_fetch(key, fetcher))
        self._inflight[key] = task
        try:
            return await task
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]

    async def _run_fetch(self, key: QueryKey, fetcher: Fetcher) -> Any:
        try:
            value = await fetcher()
        except Exception as e:
            state = self._state(key)
            state.is_fetching = False
            state.error = e
            logger.debug("Fetch of %s failed, keeping last known value: %s", key, e)
            self._notify(key, state)
            raise
        state = self._state(key)
        state.is_fetching = False
        state.fetcher = fetcher
        self.write(key, value)
        return value

    def subscribe(self, key: QueryKey, listener: Listener) -> Callable[[], None]:
        """Call ``listener(key, state)`` on every change; returns an unsubscribe function."""
        self._listeners.setdefault(key, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(key, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    async def settle(self) -> None:
        """Wait for all background re-fetches to finish."""
        while self._refetches:
            await asyncio.gather(*list(self._refetches), return_exceptions=True)
