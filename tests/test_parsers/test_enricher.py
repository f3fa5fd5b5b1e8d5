"""Tests for the two-pass metadata enricher."""


import pytest

from fakes import FakeDexScreener, pair, record, timeout_error, transport_client
from memebubbles.models import TokenIdentity
from memebubbles.parsers.enricher import MetadataEnricher, pair_from_url, pair_metadata
from memebubbles.parsers.exceptions import ValidationError


def _ident(address: str, chain: str = "solana") -> TokenIdentity:
    return TokenIdentity.of(chain, address)


class TestPairFromUrl:
    def test_pair_segment_when_chain_matches(self) -> None:
        rec = record("Tok1", url="https://dexscreener.com/solana/PairAbc")
        pid = pair_from_url(rec)
        assert pid is not None
        assert pid.pair_address == "pairabc"
        assert pid.lookup_address == "PairAbc"

    def test_chain_mismatch_yields_none(self) -> None:
        rec = record("Tok1", url="https://dexscreener.com/base/PairAbc")
        assert pair_from_url(rec) is None

    def test_token_address_segment_is_not_a_pair(self) -> None:
        assert pair_from_url(record("Tok1")) is None

    def test_short_path_yields_none(self) -> None:
        assert pair_from_url(record("Tok1", url="https://dexscreener.com/")) is None


class TestPairMetadata:
    def test_base_token_gives_full_metadata(self) -> None:
        p = pair("P1", "Tok1", symbol="ABC", name="Abc", market_cap=5000, image="https://img")
        meta = pair_metadata(p, _ident("Tok1"))
        assert meta is not None
        assert meta.symbol == "ABC"
        assert meta.market_cap == 5000.0
        assert meta.icon_url == "https://img"
        assert meta.pair_address == "P1"

    def test_quote_token_gives_name_only(self) -> None:
        p = pair("P1", "Tok1", symbol="ABC")
        meta = pair_metadata(p, _ident("So11111111111111111111111111111111111111112"))
        assert meta is not None
        assert meta.symbol == "SOL"
        assert meta.market_cap is None

    def test_unrelated_token_gives_none(self) -> None:
        assert pair_metadata(pair("P1", "Tok1"), _ident("Other")) is None

    def test_fdv_used_when_market_cap_missing(self) -> None:
        p = pair("P1", "Tok1")
        p = p.model_copy(update={"fdv": 42})
        meta = pair_metadata(p, _ident("Tok1"))
        assert meta.market_cap == 42.0


class TestEnrich:
    @pytest.mark.asyncio
    async def test_token_pass_picks_most_liquid_pair(self, fake_dex: FakeDexScreener) -> None:
        fake_dex.batches["solana"] = [
            pair("Small", "Tok1", symbol="LOW", liquidity=10),
            pair("Big", "Tok1", symbol="HIGH", liquidity=1000),
            pair("Tie", "Tok1", symbol="TIE", liquidity=1000),
        ]
        enricher = MetadataEnricher(fake_dex, base_delay_sec=0.0)

        result = await enricher.enrich([record("Tok1")])

        assert result[_ident("Tok1")].symbol == "HIGH"
        assert result[_ident("Tok1")].pair_address == "Big"

    @pytest.mark.asyncio
    async def test_pair_pass_overlays_without_erasing(self, fake_dex: FakeDexScreener) -> None:
        """Token pass resolves only the symbol, pair pass only the market cap."""
        fake_dex.batches["solana"] = [pair("P1", "Tok1", symbol="ABC")]
        fake_dex.pairs["P1"] = pair("P1", "Tok1", market_cap=1_000_000)
        enricher = MetadataEnricher(fake_dex, base_delay_sec=0.0)

        result = await enricher.enrich([record("Tok1")])

        meta = result[_ident("Tok1")]
        assert meta.symbol == "ABC"
        assert meta.market_cap == 1_000_000
        assert fake_dex.calls_of("pair") == ["P1"]

    @pytest.mark.asyncio
    async def test_pair_from_listing_url_preferred(self, fake_dex: FakeDexScreener) -> None:
        fake_dex.batches["solana"] = [pair("FromBatch", "Tok1", symbol="ABC")]
        fake_dex.pairs["FromUrl"] = pair("FromUrl", "Tok1", name="Precise")
        enricher = MetadataEnricher(fake_dex, base_delay_sec=0.0)

        result = await enricher.enrich(
            [record("Tok1", url="https://dexscreener.com/solana/FromUrl")]
        )

        assert fake_dex.calls_of("pair") == ["FromUrl"]
        assert result[_ident("Tok1")].name == "Precise"
        assert result[_ident("Tok1")].pair_address == "FromUrl"

    @pytest.mark.asyncio
    async def test_identical_pairs_fetched_once(self, fake_dex: FakeDexScreener) -> None:
        url = "https://dexscreener.com/solana/Shared"
        fake_dex.pairs["Shared"] = pair("Shared", "Tok1", symbol="ONE")
        enricher = MetadataEnricher(fake_dex, base_delay_sec=0.0)

        result = await enricher.enrich([record("Tok1", url=url), record("Tok2", url=url)])

        assert fake_dex.calls_of("pair") == ["Shared"]
        assert result[_ident("Tok1")].symbol == "ONE"
        # the shared pair's base token is Tok1, so it says nothing about Tok2
        assert _ident("Tok2") not in result

    @pytest.mark.asyncio
    async def test_batches_split_per_chain_and_size(self, fake_dex: FakeDexScreener) -> None:
        records = [record(f"S{i}") for i in range(5)] + [record("0xE1", chain="ethereum")]
        enricher = MetadataEnricher(fake_dex, base_delay_sec=0.0, batch_size=2)

        await enricher.enrich(records)

        batch_calls = fake_dex.calls_of("batch")
        assert sorted(batch_calls) == ["ethereum", "solana", "solana", "solana"]

    @pytest.mark.asyncio
    async def test_pair_pool_is_bounded(self, fake_dex: FakeDexScreener) -> None:
        fake_dex.delay = 0.01
        records = [
            record(f"Tok{i}", url=f"https://dexscreener.com/solana/Pair{i}") for i in range(20)
        ]
        enricher = MetadataEnricher(fake_dex, base_delay_sec=0.0, pair_concurrency=4, batch_concurrency=1)

        await enricher.enrich(records)

        assert len(fake_dex.calls_of("pair")) == 20
        assert fake_dex.max_active == 4

    @pytest.mark.asyncio
    async def test_batch_failure_degrades_gracefully(self, fake_dex: FakeDexScreener) -> None:
        fake_dex.batches["solana"] = timeout_error("/tokens/v1/solana")
        fake_dex.pairs["P1"] = pair("P1", "Tok1", market_cap=7)
        enricher = MetadataEnricher(fake_dex, base_delay_sec=0.0, max_attempts=2)

        result = await enricher.enrich(
            [record("Tok1", url="https://dexscreener.com/solana/P1"), record("Tok2")]
        )

        assert fake_dex.calls_of("batch") == ["solana", "solana"]
        assert result[_ident("Tok1")].market_cap == 7
        assert _ident("Tok2") not in result

    @pytest.mark.asyncio
    async def test_pair_failure_keeps_token_metadata(self, fake_dex: FakeDexScreener) -> None:
        fake_dex.batches["solana"] = [pair("P1", "Tok1", symbol="ABC")]
        fake_dex.pairs["P1"] = ValidationError("unexpected status 404", status_code=404)
        enricher = MetadataEnricher(fake_dex, base_delay_sec=0.0)

        result = await enricher.enrich([record("Tok1")])

        assert result[_ident("Tok1")].symbol == "ABC"

    @pytest.mark.asyncio
    async def test_undecodable_responses_yield_no_metadata(self) -> None:
        client = transport_client({})

        result = await MetadataEnricher(client, base_delay_sec=0.0).enrich([record("T0")])

        assert result == {}
        await client.close()

    @pytest.mark.asyncio
    async def test_empty_input(self, fake_dex: FakeDexScreener) -> None:
        assert await MetadataEnricher(fake_dex, base_delay_sec=0.0).enrich([]) == {}
        assert fake_dex.calls == []
