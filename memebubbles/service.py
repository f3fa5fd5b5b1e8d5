"""Read-side contract used by the HTTP layer."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from memebubbles.cache.recent import RecentWindowCache
from memebubbles.cache.snapshot import SnapshotCache
from memebubbles.models import BubbleRecord


@dataclass(frozen=True)
class SnapshotView:
    records: tuple[BubbleRecord, ...]
    captured_at: float
    is_stale: bool


@dataclass(frozen=True)
class HealthReport:
    has_cached_data: bool
    cache_age_ms: int | None
    last_refresh_attempt_at: float | None
    last_error_present: bool


class BubbleService:
    """Serves both caches. Raises UpstreamUnavailableError only when nothing is cached
    and the refresh needed to fill the cache failed."""

    def __init__(
        self,
        top: SnapshotCache,
        recent: RecentWindowCache,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.top = top
        self.recent = recent
        self._clock = clock

    async def get_top_snapshot(self, limit: int) -> SnapshotView:
        state, stale = await self.top.get(limit)
        return SnapshotView(records=state.records[:limit], captured_at=state.captured_at, is_stale=stale)

    async def get_recent_snapshot(self, limit: int | None = None) -> SnapshotView:
        state, stale = await self.recent.get()
        records = state.records if limit is None else state.records[:limit]
        return SnapshotView(records=records, captured_at=state.captured_at, is_stale=stale)

    def get_health(self) -> HealthReport:
        age = self.top.age(self._clock())
        return HealthReport(
            has_cached_data=self.top.state is not None,
            cache_age_ms=int(age * 1000) if age is not None else None,
            last_refresh_attempt_at=self.top.last_attempt_at,
            last_error_present=self.top.last_error is not None,
        )
