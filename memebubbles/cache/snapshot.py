from __future__ import annotations

import time
from collections.abc import Callable

from memebubbles.cache.base import TieredCache
from memebubbles.models import SnapshotState, rank_records
from memebubbles.parsers.aggregator import SourceAggregator
from memebubbles.parsers.enricher import MetadataEnricher


class SnapshotCache(TieredCache):
    """Single-slot cache of the current top list.

    Refreshes always fetch at least ``default_limit`` records so that
    requests for fewer never shrink what is cached.
    """

    name = "top"

    def __init__(
        self,
        aggregator: SourceAggregator,
        enricher: MetadataEnricher | None = None,
        *,
        default_limit: int = 30,
        fresh_ttl_sec: float = 30.0,
        stale_ttl_sec: float = 120.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(fresh_ttl_sec=fresh_ttl_sec, stale_ttl_sec=stale_ttl_sec, clock=clock)
        self._aggregator = aggregator
        self._enricher = enricher
        self._default_limit = default_limit

    def _insufficient(self, state: SnapshotState, limit: int | None) -> bool:
        """Whether the cached list is too short to answer ``limit``.

        Narrower than "fewer records than requested": a list that came back
        short for a request at least this large is what the upstream has, so
        it stays fresh instead of forcing a refresh on every call.
        """
        return limit is not None and len(state.records) < limit and state.requested_limit < limit

    async def _refresh(self, limit: int | None) -> SnapshotState:
        target = max(limit or 0, self._default_limit)
        records = await self._aggregator.collect(target)
        metadata = await self._enricher.enrich(records) if self._enricher else {}
        return SnapshotState(
            records=tuple(rank_records(records, metadata)),
            captured_at=self._clock(),
            requested_limit=target,
        )
