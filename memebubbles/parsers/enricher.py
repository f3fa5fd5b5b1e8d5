"""Two-pass metadata enrichment.

Pass 1 (token level): ``/tokens/v1`` in batches of up to 30 addresses per
chain. A token can trade in many pairs; the most liquid pair whose base token
is ours becomes the metadata source.

Pass 2 (pair level): ``/latest/dex/pairs`` for every token whose pair is
known, either from the listing URL or from pass 1. Identical pairs are
fetched once. Pair results are laid over pass-1 results field by field.

Failures in either pass only cost the affected tokens their metadata.
"""

from urllib.parse import urlparse

from loguru import logger

from memebubbles.models import PairIdentity, TokenIdentity, TokenMetadata, UpstreamRecord
from memebubbles.parsers.dexscreener.client import DexScreenerClient
from memebubbles.parsers.dexscreener.models import DexScreenerPair
from memebubbles.parsers.exceptions import PartialEnrichmentFailure, UpstreamError
from memebubbles.parsers.retry import retry_transient
from memebubbles.parsers.worker_pool import drain


def _liquidity_usd(pair: DexScreenerPair) -> float:
    if pair.liquidity is None or pair.liquidity.usd is None:
        return 0.0
    return float(pair.liquidity.usd)


def pair_metadata(pair: DexScreenerPair, identity: TokenIdentity) -> TokenMetadata | None:
    """Metadata ``pair`` carries about ``identity``, or None if the token is not in it."""
    base = pair.baseToken
    if base is not None and base.address.lower() == identity.token_address:
        market_cap = pair.marketCap if pair.marketCap is not None else pair.fdv
        info = pair.info
        return TokenMetadata(
            name=base.name or None,
            symbol=base.symbol or None,
            icon_url=(info.imageUrl or None) if info else None,
            header_url=(info.header or None) if info else None,
            market_cap=float(market_cap) if market_cap is not None else None,
            pair_address=pair.pairAddress or None,
        )
    quote = pair.quoteToken
    if quote is not None and quote.address.lower() == identity.token_address:
        return TokenMetadata(name=quote.name or None, symbol=quote.symbol or None)
    return None


def pair_from_url(record: UpstreamRecord) -> PairIdentity | None:
    """``https://dexscreener.com/<chain>/<pair>`` → PairIdentity.

    Listing URLs sometimes point at the token itself; those are ignored.
    """
    segments = [s for s in urlparse(record.url).path.split("/") if s]
    if len(segments) < 2:
        return None
    chain, last = segments[-2].lower(), segments[-1]
    if chain != record.identity.chain_id or last.lower() == record.identity.token_address:
        return None
    return PairIdentity.of(record.identity.chain_id, last)


class MetadataEnricher:
    def __init__(
        self,
        client: DexScreenerClient,
        *,
        batch_size: int = 30,
        batch_concurrency: int = 3,
        pair_concurrency: int = 6,
        max_attempts: int = 2,
        base_delay_sec: float = 0.2,
    ) -> None:
        self._client = client
        self._batch_size = max(1, min(batch_size, 30))
        self._batch_concurrency = max(1, batch_concurrency)
        self._pair_concurrency = max(1, pair_concurrency)
        self._max_attempts = max_attempts
        self._base_delay_sec = base_delay_sec

    async def enrich(self, records: list[UpstreamRecord]) -> dict[TokenIdentity, TokenMetadata]:
        """Resolve metadata for ``records``. Identities with nothing resolved are omitted."""
        if not records:
            return {}

        token_meta = await self._token_pass(records)

        pairs: dict[TokenIdentity, PairIdentity] = {}
        for record in records:
            pair = pair_from_url(record)
            if pair is None:
                known = token_meta.get(record.identity)
                if known is not None and known.pair_address:
                    pair = PairIdentity.of(record.identity.chain_id, known.pair_address)
            if pair is not None:
                pairs[record.identity] = pair

        pair_meta = await self._pair_pass(pairs)

        merged: dict[TokenIdentity, TokenMetadata] = {}
        for record in records:
            meta = token_meta.get(record.identity, TokenMetadata()).overlay(
                pair_meta.get(record.identity)
            )
            if not meta.is_empty():
                merged[record.identity] = meta

        logger.debug(
            f"[ENRICH] {len(records)} tokens: {len(token_meta)} token-level, "
            f"{len(pair_meta)} pair-level, {len(merged)} with metadata"
        )
        return merged

    def _batches(self, records: list[UpstreamRecord]) -> list[tuple[str, list[UpstreamRecord]]]:
        by_chain: dict[str, list[UpstreamRecord]] = {}
        seen: set[TokenIdentity] = set()
        for record in records:
            if record.identity in seen:
                continue
            seen.add(record.identity)
            by_chain.setdefault(record.identity.chain_id, []).append(record)

        batches = []
        for chain_id, chain_records in by_chain.items():
            for i in range(0, len(chain_records), self._batch_size):
                batches.append((chain_id, chain_records[i : i + self._batch_size]))
        return batches

    async def _token_pass(self, records: list[UpstreamRecord]) -> dict[TokenIdentity, TokenMetadata]:
        result: dict[TokenIdentity, TokenMetadata] = {}

        async def _handle(batch: tuple[str, list[UpstreamRecord]]) -> None:
            chain_id, batch_records = batch
            addresses = [r.token_address for r in batch_records]
            try:
                pairs = await retry_transient(
                    lambda: self._client.get_tokens_batch(chain_id, addresses),
                    max_attempts=self._max_attempts,
                    base_delay_sec=self._base_delay_sec,
                    label=f"tokens:{chain_id}",
                )
            except UpstreamError as e:
                failure = PartialEnrichmentFailure(f"{len(addresses)} tokens on {chain_id}", e)
                logger.warning(f"[ENRICH] {failure}")
                return

            wanted = {r.identity for r in batch_records}
            best: dict[TokenIdentity, DexScreenerPair] = {}
            for pair in pairs:
                if pair.baseToken is None:
                    continue
                identity = TokenIdentity.of(chain_id, pair.baseToken.address)
                if identity not in wanted:
                    continue
                current = best.get(identity)
                if current is None or _liquidity_usd(pair) > _liquidity_usd(current):
                    best[identity] = pair

            for identity, pair in best.items():
                meta = pair_metadata(pair, identity)
                if meta is not None:
                    result[identity] = meta

        await drain(self._batches(records), _handle, concurrency=self._batch_concurrency)
        return result

    async def _pair_pass(
        self, pairs: dict[TokenIdentity, PairIdentity]
    ) -> dict[TokenIdentity, TokenMetadata]:
        owners: dict[PairIdentity, list[TokenIdentity]] = {}
        for identity, pair in pairs.items():
            owners.setdefault(pair, []).append(identity)

        result: dict[TokenIdentity, TokenMetadata] = {}

        async def _handle(pair_id: PairIdentity) -> None:
            try:
                pair = await retry_transient(
                    lambda: self._client.get_pair(pair_id.chain_id, pair_id.lookup_address),
                    max_attempts=self._max_attempts,
                    base_delay_sec=self._base_delay_sec,
                    label=f"pair:{pair_id.chain_id}",
                )
            except UpstreamError as e:
                failure = PartialEnrichmentFailure(f"pair {pair_id.pair_address[:12]}", e)
                logger.debug(f"[ENRICH] {failure}")
                return
            if pair is None:
                return
            for identity in owners[pair_id]:
                meta = pair_metadata(pair, identity)
                if meta is not None:
                    result[identity] = meta

        await drain(list(owners), _handle, concurrency=self._pair_concurrency)
        return result
