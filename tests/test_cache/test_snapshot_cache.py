"""Tests for the top snapshot cache: freshness zones and single-flight refresh."""

import asyncio

import pytest

from fakes import (
    FakeAggregator,
    FakeClock,
    corrupt_gzip,
    listing_json,
    record,
    timeout_error,
    transport_client,
)
from memebubbles.cache.base import Freshness
from memebubbles.cache.snapshot import SnapshotCache
from memebubbles.parsers.aggregator import SourceAggregator
from memebubbles.parsers.dexscreener.endpoints import LATEST, TOP
from memebubbles.parsers.exceptions import PrimarySourceFailure, UpstreamUnavailableError


def _cache(aggregator: FakeAggregator, clock: FakeClock, **kwargs) -> SnapshotCache:
    kwargs.setdefault("default_limit", 30)
    return SnapshotCache(aggregator, None, fresh_ttl_sec=30, stale_ttl_sec=120, clock=clock, **kwargs)


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def aggregator(fake_aggregator: FakeAggregator) -> FakeAggregator:
    fake_aggregator.records = [record(f"T{i}") for i in range(40)]
    return fake_aggregator


class TestZones:
    def test_zone_boundaries(self, aggregator: FakeAggregator, clock: FakeClock) -> None:
        cache = _cache(aggregator, clock)
        assert cache.freshness() is Freshness.EXPIRED

    @pytest.mark.asyncio
    async def test_expired_without_state_blocks_for_refresh(
        self, aggregator: FakeAggregator, clock: FakeClock
    ) -> None:
        cache = _cache(aggregator, clock)

        state, stale = await cache.get(10)

        assert not stale
        assert len(state.records) == 30
        assert [r.rank for r in state.records] == list(range(1, 31))
        assert state.captured_at == clock.now
        assert aggregator.calls == [30]

    @pytest.mark.asyncio
    async def test_fresh_serves_cache_without_refresh(
        self, aggregator: FakeAggregator, clock: FakeClock
    ) -> None:
        cache = _cache(aggregator, clock)
        first, _ = await cache.get(10)

        clock.advance(30)
        assert cache.freshness(10) is Freshness.FRESH
        second, stale = await cache.get(10)

        assert second is first
        assert not stale
        assert len(aggregator.calls) == 1

    @pytest.mark.asyncio
    async def test_stale_serves_immediately_and_refreshes_once(
        self, aggregator: FakeAggregator, clock: FakeClock
    ) -> None:
        """Age 45s: ten callers get cached data flagged stale, one refresh runs."""
        cache = _cache(aggregator, clock)
        original, _ = await cache.get(10)
        clock.advance(45)
        aggregator.gate = asyncio.Event()

        results = await asyncio.gather(*(cache.get(10) for _ in range(10)))

        assert all(state is original and stale for state, stale in results)
        await _settle()
        assert len(aggregator.calls) == 2
        assert cache.refresh_count == 2

        aggregator.gate.set()
        await cache._flight.pending.wait()
        assert cache.state is not original
        assert cache.freshness(10) is Freshness.FRESH

    @pytest.mark.asyncio
    async def test_expired_by_age_refreshes(self, aggregator: FakeAggregator, clock: FakeClock) -> None:
        cache = _cache(aggregator, clock)
        original, _ = await cache.get(10)
        clock.advance(121)

        state, stale = await cache.get(10)

        assert state is not original
        assert not stale

    @pytest.mark.asyncio
    async def test_too_few_records_for_request_is_expired(
        self, aggregator: FakeAggregator, clock: FakeClock
    ) -> None:
        cache = _cache(aggregator, clock, default_limit=5)
        await cache.get(5)
        assert cache.freshness(5) is Freshness.FRESH
        assert cache.freshness(10) is Freshness.EXPIRED

        state, _ = await cache.get(10)

        assert len(state.records) == 10
        assert aggregator.calls == [5, 10]

    @pytest.mark.asyncio
    async def test_short_upstream_list_does_not_force_refresh(
        self, aggregator: FakeAggregator, clock: FakeClock
    ) -> None:
        aggregator.records = aggregator.records[:3]
        cache = _cache(aggregator, clock, default_limit=30)
        await cache.get(10)

        assert cache.freshness(10) is Freshness.FRESH


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_expired_gets_share_one_refresh(
        self, aggregator: FakeAggregator, clock: FakeClock
    ) -> None:
        cache = _cache(aggregator, clock)
        aggregator.gate = asyncio.Event()

        tasks = [asyncio.create_task(cache.get(10)) for _ in range(8)]
        await _settle()
        assert len(aggregator.calls) == 1
        assert cache.in_flight
        assert cache._flight.pending.waiters == 8

        aggregator.gate.set()
        results = await asyncio.gather(*tasks)

        states = {id(state) for state, _ in results}
        assert len(states) == 1
        assert cache.refresh_count == 1
        assert not cache.in_flight

    @pytest.mark.asyncio
    async def test_departing_caller_does_not_cancel_refresh(
        self, aggregator: FakeAggregator, clock: FakeClock
    ) -> None:
        cache = _cache(aggregator, clock)
        aggregator.gate = asyncio.Event()

        waiter = asyncio.create_task(cache.get(10))
        await _settle()
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        aggregator.gate.set()
        await _settle()
        assert cache.state is not None


class TestFailures:
    @pytest.mark.asyncio
    async def test_primary_failure_without_cache_is_upstream_unavailable(
        self, aggregator: FakeAggregator, clock: FakeClock
    ) -> None:
        aggregator.error = PrimarySourceFailure("top", timeout_error())
        cache = _cache(aggregator, clock)

        with pytest.raises(UpstreamUnavailableError):
            await cache.get(10)

        assert cache.state is None
        assert isinstance(cache.last_error, PrimarySourceFailure)
        assert cache.last_attempt_at == clock.now

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_state_visible(
        self, aggregator: FakeAggregator, clock: FakeClock
    ) -> None:
        cache = _cache(aggregator, clock)
        original, _ = await cache.get(10)
        clock.advance(500)
        aggregator.error = PrimarySourceFailure("top", timeout_error())

        state, stale = await cache.get(10)

        assert state is original
        assert stale
        assert cache.last_error is not None

    @pytest.mark.asyncio
    async def test_undecodable_primary_keeps_previous_state_visible(self, clock: FakeClock) -> None:
        routes: dict[str, object] = {TOP.path: [listing_json("T0")], LATEST.path: []}
        client = transport_client(routes)
        cache = SnapshotCache(
            SourceAggregator(client, [TOP, LATEST], base_delay_sec=0.0), clock=clock
        )
        original, _ = await cache.get(10)
        clock.advance(500)
        routes[TOP.path] = corrupt_gzip

        state, stale = await cache.get(10)

        assert state is original
        assert stale
        assert isinstance(cache.last_error, PrimarySourceFailure)
        await client.close()

    @pytest.mark.asyncio
    async def test_success_clears_last_error(self, aggregator: FakeAggregator, clock: FakeClock) -> None:
        cache = _cache(aggregator, clock)
        aggregator.error = PrimarySourceFailure("top", timeout_error())
        with pytest.raises(UpstreamUnavailableError):
            await cache.get(10)

        aggregator.error = None
        await cache.get(10)
        assert cache.last_error is None

    @pytest.mark.asyncio
    async def test_failed_background_refresh_keeps_serving(
        self, aggregator: FakeAggregator, clock: FakeClock
    ) -> None:
        cache = _cache(aggregator, clock)
        original, _ = await cache.get(10)
        clock.advance(60)
        aggregator.error = PrimarySourceFailure("top", timeout_error())

        state, stale = await cache.get(10)
        await _settle()

        assert state is original and stale
        assert cache.state is original
        assert isinstance(cache.last_error, PrimarySourceFailure)


def test_stale_ttl_shorter_than_fresh_rejected(fake_aggregator: FakeAggregator) -> None:
    with pytest.raises(ValueError):
        SnapshotCache(fake_aggregator, fresh_ttl_sec=60, stale_ttl_sec=30)
