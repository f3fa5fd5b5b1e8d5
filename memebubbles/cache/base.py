"""Fresh / stale / expired cache shared by the top snapshot and the recent window.

Zones by ``now - captured_at``:

- fresh (<= fresh TTL): serve as-is.
- stale (<= stale TTL): serve as-is, flag stale, start a background refresh
  unless one is already running.
- expired (older, nothing cached, or too few records for the request):
  wait for the single in-flight refresh. When it fails the previous state is
  served flagged stale; with no previous state the caller gets
  UpstreamUnavailableError.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from enum import Enum

from loguru import logger

from memebubbles.cache.single_flight import PendingRefresh, SingleFlight
from memebubbles.models import SnapshotState
from memebubbles.parsers.exceptions import UpstreamError, UpstreamUnavailableError


class Freshness(Enum):
    FRESH = "fresh"
    STALE = "stale"
    EXPIRED = "expired"


class TieredCache:
    name = "cache"

    def __init__(
        self,
        *,
        fresh_ttl_sec: float,
        stale_ttl_sec: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if stale_ttl_sec < fresh_ttl_sec:
            raise ValueError("stale TTL must not be shorter than fresh TTL")
        self._fresh_ttl = fresh_ttl_sec
        self._stale_ttl = stale_ttl_sec
        self._clock = clock
        self._state: SnapshotState | None = None
        self._flight: SingleFlight[SnapshotState] = SingleFlight(self.name)
        self.last_error: Exception | None = None
        self.last_attempt_at: float | None = None

    @property
    def state(self) -> SnapshotState | None:
        return self._state

    @property
    def refresh_count(self) -> int:
        """Refresh sequences started since creation."""
        return self._flight.started

    @property
    def in_flight(self) -> bool:
        pending = self._flight.pending
        return pending is not None and not pending.done()

    def age(self, now: float | None = None) -> float | None:
        if self._state is None:
            return None
        return (self._clock() if now is None else now) - self._state.captured_at

    def _insufficient(self, state: SnapshotState, limit: int | None) -> bool:
        return False

    def freshness(self, limit: int | None = None, now: float | None = None) -> Freshness:
        state = self._state
        if state is None or self._insufficient(state, limit):
            return Freshness.EXPIRED
        age = (self._clock() if now is None else now) - state.captured_at
        if age <= self._fresh_ttl:
            return Freshness.FRESH
        if age <= self._stale_ttl:
            return Freshness.STALE
        return Freshness.EXPIRED

    async def _refresh(self, limit: int | None) -> SnapshotState:
        raise NotImplementedError

    async def _run_refresh(self, limit: int | None) -> SnapshotState:
        self.last_attempt_at = self._clock()
        try:
            state = await self._refresh(limit)
        except Exception as e:
            self.last_error = e
            logger.warning(f"[CACHE] {self.name} refresh failed: {e}")
            raise
        self._state = state
        self.last_error = None
        logger.info(f"[CACHE] {self.name} refreshed: {len(state.records)} records")
        return state

    def trigger_refresh(self, limit: int | None = None) -> PendingRefresh[SnapshotState]:
        """Start a refresh unless one is already running; return the shared handle."""
        return self._flight.start(lambda: self._run_refresh(limit))

    async def get(self, limit: int | None = None) -> tuple[SnapshotState, bool]:
        """Return ``(state, is_stale)`` following the zone rules above."""
        zone = self.freshness(limit)
        state = self._state
        if zone is Freshness.FRESH and state is not None:
            return state, False
        if zone is Freshness.STALE and state is not None:
            self.trigger_refresh(limit)
            return state, True

        try:
            fresh = await self.trigger_refresh(limit).wait()
        except UpstreamError as e:
            fallback = self._state
            if fallback is None:
                raise UpstreamUnavailableError(f"{self.name}: upstream unavailable ({e})") from e
            logger.info(f"[CACHE] {self.name} serving stale data after failed refresh")
            return fallback, True
        return fresh, False
