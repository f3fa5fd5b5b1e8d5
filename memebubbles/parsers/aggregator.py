"""Listing fan-out: fetch every feed concurrently, merge in priority order, dedupe."""

import asyncio

from loguru import logger

from memebubbles.models import Link, TokenIdentity, UpstreamRecord
from memebubbles.parsers.dexscreener.client import DexScreenerClient
from memebubbles.parsers.dexscreener.endpoints import ListingSource
from memebubbles.parsers.dexscreener.models import DexScreenerListing
from memebubbles.parsers.exceptions import (
    PrimarySourceFailure,
    SupplementarySourceFailure,
    UpstreamError,
)
from memebubbles.parsers.retry import retry_transient


def to_record(listing: DexScreenerListing, source: ListingSource) -> UpstreamRecord:
    weight = 0.0
    if source.weight_field:
        weight = float(getattr(listing, source.weight_field, None) or 0.0)
    return UpstreamRecord(
        identity=TokenIdentity.of(listing.chainId, listing.tokenAddress),
        source=source.name,
        chain_id=listing.chainId,
        token_address=listing.tokenAddress,
        url=listing.url,
        description=listing.description,
        icon=listing.icon,
        header=listing.header,
        open_graph=listing.openGraph,
        links=tuple(Link(url=l.url, type=l.type, label=l.label) for l in listing.links or []),
        weight=weight,
    )


def dedupe(records: list[UpstreamRecord], limit: int | None = None) -> list[UpstreamRecord]:
    """Keep the first record per identity, then truncate to ``limit``."""
    seen: set[TokenIdentity] = set()
    unique: list[UpstreamRecord] = []
    for record in records:
        if record.identity in seen:
            continue
        seen.add(record.identity)
        unique.append(record)
        if limit is not None and len(unique) >= limit:
            break
    return unique


class SourceAggregator:
    """Merges the configured listing feeds into one ordered, unique list.

    ``sources[0]`` is primary: its failure fails the whole collection.
    Any other feed that fails simply contributes nothing.
    """

    def __init__(
        self,
        client: DexScreenerClient,
        sources: list[ListingSource],
        *,
        max_attempts: int = 3,
        base_delay_sec: float = 0.2,
    ) -> None:
        if not sources:
            raise ValueError("at least one listing source is required")
        self._client = client
        self._sources = list(sources)
        self._max_attempts = max_attempts
        self._base_delay_sec = base_delay_sec

    @property
    def sources(self) -> list[ListingSource]:
        return list(self._sources)

    async def _fetch_source(self, source: ListingSource, primary: bool) -> list[UpstreamRecord]:
        try:
            listings = await retry_transient(
                lambda: self._client.get_listings(source),
                max_attempts=self._max_attempts,
                base_delay_sec=self._base_delay_sec,
                label=f"listing:{source.name}",
            )
        except UpstreamError as e:
            if primary:
                raise PrimarySourceFailure(source.name, e) from e
            raise SupplementarySourceFailure(source.name, e) from e
        return [to_record(listing, source) for listing in listings]

    async def collect(self, limit: int | None) -> list[UpstreamRecord]:
        """Fetch all feeds and return at most ``limit`` unique records (None = no cap)."""
        results = await asyncio.gather(
            *(self._fetch_source(source, i == 0) for i, source in enumerate(self._sources)),
            return_exceptions=True,
        )

        merged: list[UpstreamRecord] = []
        for source, result in zip(self._sources, results):
            if isinstance(result, SupplementarySourceFailure):
                logger.warning(f"[AGG] {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            merged.extend(result)

        unique = dedupe(merged, limit)
        logger.debug(
            f"[AGG] {len(merged)} listings from {len(self._sources)} sources, "
            f"{len(unique)} unique (limit={limit})"
        )
        return unique
