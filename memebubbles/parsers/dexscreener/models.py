from decimal import Decimal

from pydantic import BaseModel


class DexScreenerLink(BaseModel):
    url: str
    type: str | None = None
    label: str | None = None

    model_config = {"extra": "ignore"}


class DexScreenerListing(BaseModel):
    """One entry of a listing feed (boosts, profiles, takeovers, ads)."""

    url: str
    chainId: str
    tokenAddress: str
    description: str | None = None
    icon: str | None = None
    header: str | None = None
    openGraph: str | None = None
    links: list[DexScreenerLink] | None = None
    amount: float | None = None
    totalAmount: float | None = None

    model_config = {"extra": "ignore"}


class DexScreenerToken(BaseModel):
    address: str
    name: str | None = None
    symbol: str | None = None

    model_config = {"extra": "ignore"}


class DexScreenerLiquidity(BaseModel):
    usd: Decimal | None = None
    base: Decimal | None = None
    quote: Decimal | None = None

    model_config = {"extra": "ignore"}


class DexScreenerPairInfo(BaseModel):
    imageUrl: str | None = None
    header: str | None = None
    openGraph: str | None = None

    model_config = {"extra": "ignore"}


class DexScreenerPair(BaseModel):
    chainId: str = ""
    dexId: str = ""
    url: str | None = None
    pairAddress: str = ""
    baseToken: DexScreenerToken | None = None
    quoteToken: DexScreenerToken | None = None
    priceUsd: str | None = None
    liquidity: DexScreenerLiquidity | None = None
    fdv: Decimal | None = None
    marketCap: Decimal | None = None
    pairCreatedAt: int | None = None
    info: DexScreenerPairInfo | None = None

    model_config = {"extra": "ignore"}


class DexScreenerPairsResponse(BaseModel):
    """``/latest/dex/pairs`` wraps results in either ``pairs`` or ``pair``."""

    schemaVersion: str | None = None
    pairs: list[DexScreenerPair] | None = None
    pair: DexScreenerPair | None = None

    model_config = {"extra": "ignore"}

    def all_pairs(self) -> list[DexScreenerPair]:
        if self.pairs:
            return self.pairs
        return [self.pair] if self.pair else []
