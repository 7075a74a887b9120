"""Tests for the shared query cache."""

import asyncio

import pytest

from havensync.core.cache import DOCUMENTS_KEY, InMemoryQueryCache
from havensync.core.exceptions import TransportError


class CountingFetcher:
    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


async def test_fetch_caches_fresh_values():
    cache = InMemoryQueryCache()
    fetcher = CountingFetcher(["a"])

    assert await cache.fetch(("k",), fetcher) == ["a"]
    assert await cache.fetch(("k",), fetcher) == ["a"]
    assert fetcher.calls == 1


async def test_force_fetch_goes_to_source():
    cache = InMemoryQueryCache()
    fetcher = CountingFetcher(["a"], ["b"])

    await cache.fetch(("k",), fetcher)
    assert await cache.fetch(("k",), fetcher, force=True) == ["b"]


async def test_failed_refetch_keeps_last_good_value():
    cache = InMemoryQueryCache()
    fetcher = CountingFetcher(["good"], TransportError("quota exceeded", status_code=429))

    await cache.fetch(("k",), fetcher)
    with pytest.raises(TransportError):
        await cache.fetch(("k",), fetcher, force=True)

    state = cache.state(("k",))
    assert cache.get(("k",)) == ["good"]
    assert str(state.error) == "quota exceeded"
    assert state.is_fetching is False


async def test_write_accepts_updater():
    cache = InMemoryQueryCache()
    cache.write(("k",), [1])
    result = cache.write(("k",), lambda prev: prev + [2])

    assert result == [1, 2]
    assert cache.get(("k",)) == [1, 2]


async def test_updater_sees_none_for_empty_key():
    cache = InMemoryQueryCache()
    seen = []
    cache.write(("k",), lambda prev: seen.append(prev) or ["x"])
    assert seen == [None]


async def test_invalidate_refetches_known_query():
    cache = InMemoryQueryCache()
    fetcher = CountingFetcher(["v1"], ["v2"])

    await cache.fetch(DOCUMENTS_KEY, fetcher)
    cache.invalidate(DOCUMENTS_KEY)
    assert cache.state(DOCUMENTS_KEY).is_stale is True

    await cache.settle()

    assert fetcher.calls == 2
    assert cache.get(DOCUMENTS_KEY) == ["v2"]
    assert cache.state(DOCUMENTS_KEY).is_stale is False


async def test_invalidate_without_fetcher_marks_stale_for_next_read():
    cache = InMemoryQueryCache()
    cache.write(("k",), ["written"])
    cache.invalidate(("k",))

    await cache.settle()
    assert cache.get(("k",)) == ["written"]

    fetcher = CountingFetcher(["server"])
    assert await cache.fetch(("k",), fetcher) == ["server"]


async def test_background_refetch_failure_is_recorded():
    cache = InMemoryQueryCache()
    fetcher = CountingFetcher(["v1"], TransportError("down"))

    await cache.fetch(("k",), fetcher)
    cache.invalidate(("k",))
    await cache.settle()

    assert cache.get(("k",)) == ["v1"]
    assert isinstance(cache.state(("k",)).error, TransportError)


async def test_concurrent_fetches_share_one_request():
    cache = InMemoryQueryCache()
    release = asyncio.Event()
    calls = []

    async def fetcher():
        calls.append(1)
        await release.wait()
        return ["shared"]

    first = asyncio.create_task(cache.fetch(("k",), fetcher))
    second = asyncio.create_task(cache.fetch(("k",), fetcher))
    await asyncio.sleep(0)
    assert cache.state(("k",)).is_pending is True

    release.set()
    assert await first == await second == ["shared"]
    assert len(calls) == 1


async def test_subscribers_are_notified_until_unsubscribed():
    cache = InMemoryQueryCache()
    events = []
    unsubscribe = cache.subscribe(("k",), lambda key, state: events.append((key, state.value)))

    cache.write(("k",), 1)
    cache.invalidate(("k",))
    unsubscribe()
    cache.write(("k",), 2)

    assert events == [(("k",), 1), (("k",), 1)]


async def test_failing_listener_does_not_break_writes():
    cache = InMemoryQueryCache()

    def broken(key, state):
        raise RuntimeError("listener bug")

    cache.subscribe(("k",), broken)
    assert cache.write(("k",), "ok") == "ok"


async def test_entries_are_bounded():
    cache = InMemoryQueryCache(maxsize=2)
    cache.write(("a",), 1)
    cache.write(("b",), 2)
    cache.write(("c",), 3)

    assert cache.get(("a",)) is None
    assert cache.get(("c",)) == 3
