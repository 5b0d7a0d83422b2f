"""Tests for HighestBidCache: coalescing, issue-order wins, failure handling."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.au_bidding.domain.cache import HighestBidCache
from src.au_common.clock import FakeClock
from src.au_common.enums import CacheState
from src.au_common.errors import ApiTimeoutError


class ControlledFetch:
    """Fetcher whose responses the test releases one by one, in any order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, asyncio.Future[Decimal]]] = []

    async def __call__(self, product_key: str) -> Decimal:
        future: asyncio.Future[Decimal] = asyncio.get_running_loop().create_future()
        self.calls.append((product_key, future))
        return await future

    def respond(self, index: int, value: int) -> None:
        self.calls[index][1].set_result(Decimal(value))

    def fail(self, index: int, exc: Exception) -> None:
        self.calls[index][1].set_exception(exc)


async def _drain() -> None:
    for _ in range(10):
        await asyncio.sleep(0)


class TestReads:
    def test_unknown_key_is_absent(self, clock: FakeClock) -> None:
        cache = HighestBidCache(AsyncMock(), clock)
        assert cache.get("p1") is None
        assert cache.state("p1") is CacheState.ABSENT
        assert cache.view("p1").value is None
        assert cache.needs_refresh("p1") is True

    async def test_refresh_stores_value_and_timestamp(self, clock: FakeClock) -> None:
        cache = HighestBidCache(AsyncMock(return_value=Decimal(100)), clock)
        assert await cache.refresh("p1") == Decimal(100)
        snap = cache.get("p1")
        assert snap is not None
        assert snap.value == Decimal(100)
        assert snap.last_refreshed_at == clock.now()
        assert snap.state is CacheState.FRESH
        assert snap.stale is False


class TestStateMachine:
    async def test_full_lifecycle(self, clock: FakeClock) -> None:
        fetch = ControlledFetch()
        cache = HighestBidCache(fetch, clock)
        assert cache.state("p1") is CacheState.ABSENT

        first = asyncio.create_task(cache.refresh("p1"))
        await _drain()
        assert cache.state("p1") is CacheState.REFRESHING
        fetch.respond(0, 100)
        await first
        assert cache.state("p1") is CacheState.FRESH

        cache.invalidate("p1")
        assert cache.state("p1") is CacheState.STALE
        assert cache.get("p1").stale is True

        second = asyncio.create_task(cache.refresh("p1"))
        await _drain()
        assert cache.state("p1") is CacheState.REFRESHING
        fetch.respond(1, 150)
        assert await second == Decimal(150)
        assert cache.state("p1") is CacheState.FRESH

    def test_invalidate_absent_key_is_noop(self, clock: FakeClock) -> None:
        cache = HighestBidCache(AsyncMock(), clock)
        cache.invalidate("p1")
        assert cache.state("p1") is CacheState.ABSENT


class TestConcurrency:
    async def test_concurrent_refreshes_coalesce(self, clock: FakeClock) -> None:
        fetch = ControlledFetch()
        cache = HighestBidCache(fetch, clock)
        tasks = [asyncio.create_task(cache.refresh("p1")) for _ in range(3)]
        await _drain()
        assert len(fetch.calls) == 1
        fetch.respond(0, 120)
        assert await asyncio.gather(*tasks) == [Decimal(120)] * 3

    async def test_different_keys_fetch_independently(self, clock: FakeClock) -> None:
        fetch = ControlledFetch()
        cache = HighestBidCache(fetch, clock)
        a = asyncio.create_task(cache.refresh("p1"))
        b = asyncio.create_task(cache.refresh("p2"))
        await _drain()
        assert sorted(key for key, _ in fetch.calls) == ["p1", "p2"]
        fetch.respond(0, 1)
        fetch.respond(1, 2)
        await asyncio.gather(a, b)

    async def test_later_issued_request_wins_over_late_response(self, clock: FakeClock) -> None:
        fetch = ControlledFetch()
        cache = HighestBidCache(fetch, clock)
        a = asyncio.create_task(cache.refresh("p1"))
        await _drain()
        b = asyncio.create_task(cache.refresh("p1", force=True))
        await _drain()
        assert len(fetch.calls) == 2

        fetch.respond(1, 200)          # B arrives first
        assert await b == Decimal(200)
        fetch.respond(0, 100)          # A arrives late
        assert await a == Decimal(200)
        assert cache.get("p1").value == Decimal(200)
        assert cache.state("p1") is CacheState.FRESH

    async def test_refresh_after_invalidate_issues_new_request(self, clock: FakeClock) -> None:
        fetch = ControlledFetch()
        cache = HighestBidCache(fetch, clock)
        a = asyncio.create_task(cache.refresh("p1"))
        await _drain()
        cache.invalidate("p1")
        b = asyncio.create_task(cache.refresh("p1"))
        await _drain()
        assert len(fetch.calls) == 2
        fetch.respond(1, 150)
        fetch.respond(0, 100)
        assert await asyncio.gather(a, b) == [Decimal(150), Decimal(150)]
        assert cache.get("p1").value == Decimal(150)

    async def test_invalidated_in_flight_lands_stale(self, clock: FakeClock) -> None:
        fetch = ControlledFetch()
        cache = HighestBidCache(fetch, clock)
        a = asyncio.create_task(cache.refresh("p1"))
        await _drain()
        cache.invalidate("p1")
        fetch.respond(0, 100)
        await a
        assert cache.get("p1").value == Decimal(100)
        assert cache.state("p1") is CacheState.STALE

    async def test_cancelled_caller_does_not_cancel_fetch(self, clock: FakeClock) -> None:
        fetch = ControlledFetch()
        cache = HighestBidCache(fetch, clock)
        caller = asyncio.create_task(cache.refresh("p1"))
        await _drain()
        caller.cancel()
        await _drain()
        fetch.respond(0, 90)
        await _drain()
        assert cache.get("p1").value == Decimal(90)


class TestFailures:
    async def test_failure_keeps_last_good_value(self, clock: FakeClock) -> None:
        fetch = AsyncMock(side_effect=[Decimal(100), ApiTimeoutError("/highest-bid")])
        cache = HighestBidCache(fetch, clock)
        await cache.refresh("p1")
        cache.invalidate("p1")
        with pytest.raises(ApiTimeoutError):
            await cache.refresh("p1")
        snap = cache.get("p1")
        assert snap.value == Decimal(100)
        assert snap.state is CacheState.STALE
        assert snap.error is not None and snap.error.code == 9001
        assert snap.stale is True

    async def test_first_failure_stays_absent(self, clock: FakeClock) -> None:
        cache = HighestBidCache(AsyncMock(side_effect=ApiTimeoutError("/highest-bid")), clock)
        with pytest.raises(ApiTimeoutError):
            await cache.refresh("p1")
        assert cache.get("p1") is None
        assert cache.state("p1") is CacheState.ABSENT

    async def test_superseded_failure_defers_to_newer(self, clock: FakeClock) -> None:
        fetch = ControlledFetch()
        cache = HighestBidCache(fetch, clock)
        a = asyncio.create_task(cache.refresh("p1"))
        await _drain()
        b = asyncio.create_task(cache.refresh("p1", force=True))
        await _drain()
        fetch.fail(0, ApiTimeoutError("/highest-bid"))
        await _drain()
        assert cache.state("p1") is CacheState.REFRESHING
        fetch.respond(1, 300)
        assert await asyncio.gather(a, b) == [Decimal(300), Decimal(300)]

    async def test_success_clears_previous_error(self, clock: FakeClock) -> None:
        fetch = AsyncMock(side_effect=[ApiTimeoutError("/highest-bid"), Decimal(50)])
        cache = HighestBidCache(fetch, clock)
        with pytest.raises(ApiTimeoutError):
            await cache.refresh("p1")
        await cache.refresh("p1")
        assert cache.get("p1").error is None

    async def test_unexpected_error_does_not_wedge_entry(self, clock: FakeClock) -> None:
        fetch = AsyncMock(side_effect=[RuntimeError("fetcher bug"), Decimal(100)])
        cache = HighestBidCache(fetch, clock)
        with pytest.raises(RuntimeError):
            await cache.refresh("p1")
        assert cache.state("p1") is CacheState.ABSENT
        assert cache.needs_refresh("p1") is True
        assert await cache.refresh("p1") == Decimal(100)
        assert cache.state("p1") is CacheState.FRESH
        assert fetch.await_count == 2

    async def test_unexpected_error_after_value_goes_stale(self, clock: FakeClock) -> None:
        fetch = AsyncMock(side_effect=[Decimal(100), ValueError("bad payload")])
        cache = HighestBidCache(fetch, clock)
        await cache.refresh("p1")
        with pytest.raises(ValueError):
            await cache.refresh("p1", force=True)
        snap = cache.get("p1")
        assert snap.value == Decimal(100)
        assert snap.state is CacheState.STALE
