"""Registry of every token seen recently, independent of the top list.

Tokens stay listed after dropping out of the feeds until they age past the
retention TTL or are pushed out by capacity. Each refresh:

1. collects a wider window of listings (not truncated to capacity),
2. looks up metadata only for tokens that are new or whose metadata is
   older than ``metadata_max_age_sec``, then upserts one entry per identity
   (``last_seen_at = now``, metadata overlaid),
3. drops entries not seen within the retention TTL,
4. keeps the ``capacity`` most recently seen entries,
5. ranks the survivors 1..K in recency order.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Collection

from loguru import logger

from memebubbles.cache.base import TieredCache
from memebubbles.models import (
    BubbleRecord,
    RecentEntry,
    SnapshotState,
    TokenIdentity,
    TokenMetadata,
    UpstreamRecord,
)
from memebubbles.parsers.aggregator import SourceAggregator
from memebubbles.parsers.enricher import MetadataEnricher


class RecentWindowCache(TieredCache):
    name = "recent"

    def __init__(
        self,
        aggregator: SourceAggregator,
        enricher: MetadataEnricher | None = None,
        *,
        capacity: int = 100,
        observation_window: int | None = 200,
        retention_sec: float = 6 * 3600,
        metadata_max_age_sec: float = 300.0,
        fresh_ttl_sec: float = 30.0,
        stale_ttl_sec: float = 120.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(fresh_ttl_sec=fresh_ttl_sec, stale_ttl_sec=stale_ttl_sec, clock=clock)
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._aggregator = aggregator
        self._enricher = enricher
        self._capacity = capacity
        self._observation_window = observation_window
        self._retention = retention_sec
        self._metadata_max_age = metadata_max_age_sec
        self._entries: dict[TokenIdentity, RecentEntry] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> list[RecentEntry]:
        return list(self._entries.values())

    def observe(
        self,
        records: list[UpstreamRecord],
        metadata: dict[TokenIdentity, TokenMetadata],
        now: float,
        enriched: Collection[TokenIdentity] = (),
    ) -> None:
        """Upsert entries for this cycle's records, ahead of everything older.

        ``enriched`` names the identities a metadata lookup was attempted for
        this cycle, whether or not it resolved anything.
        """
        cycle: dict[TokenIdentity, RecentEntry] = {}
        for record in records:
            if record.identity in cycle:
                continue
            meta = metadata.get(record.identity)
            entry = self._entries.get(record.identity)
            if entry is None:
                entry = RecentEntry(
                    identity=record.identity, last_record=record, last_seen_at=now, metadata=meta
                )
            else:
                entry.last_record = record
                entry.last_seen_at = now
                if meta is not None:
                    entry.metadata = (entry.metadata or TokenMetadata()).overlay(meta)
            if record.identity in enriched:
                entry.enriched_at = now
            cycle[record.identity] = entry

        for identity, entry in self._entries.items():
            if identity not in cycle:
                cycle[identity] = entry
        self._entries = cycle

    def evict(self, now: float) -> int:
        """Drop expired entries, then trim to capacity by recency. Idempotent."""
        before = len(self._entries)
        alive = [e for e in self._entries.values() if now - e.last_seen_at <= self._retention]
        # sorted() is stable, so same-cycle entries keep their feed priority order
        alive = sorted(alive, key=lambda e: e.last_seen_at, reverse=True)[: self._capacity]
        self._entries = {e.identity: e for e in alive}
        return before - len(self._entries)

    def _needs_metadata(self, records: list[UpstreamRecord], now: float) -> list[UpstreamRecord]:
        """Records never looked up, or looked up longer than the max age ago."""
        pending = []
        for record in records:
            entry = self._entries.get(record.identity)
            if entry is None or entry.enriched_at is None:
                pending.append(record)
            elif now - entry.enriched_at > self._metadata_max_age:
                pending.append(record)
        return pending

    def _snapshot(self, now: float) -> SnapshotState:
        records = tuple(
            BubbleRecord.build(entry.last_record, rank, entry.metadata)
            for rank, entry in enumerate(self._entries.values(), start=1)
        )
        return SnapshotState(records=records, captured_at=now, requested_limit=self._capacity)

    async def _refresh(self, limit: int | None) -> SnapshotState:
        records = await self._aggregator.collect(self._observation_window)
        pending = self._needs_metadata(records, self._clock()) if self._enricher else []
        metadata = await self._enricher.enrich(pending) if pending else {}

        # No suspension point from here on: readers see the old or the new state.
        now = self._clock()
        self.observe(records, metadata, now, enriched={r.identity for r in pending})
        evicted = self.evict(now)
        if evicted:
            logger.debug(f"[RECENT] Evicted {evicted} entries, {len(self._entries)} kept")
        return self._snapshot(now)
