import asyncio
from typing import Any, TypeVar

import httpx
import pydantic
from loguru import logger
from pydantic import TypeAdapter

from memebubbles.parsers.dexscreener import endpoints
from memebubbles.parsers.dexscreener.endpoints import ListingSource
from memebubbles.parsers.dexscreener.models import (
    DexScreenerListing,
    DexScreenerPair,
    DexScreenerPairsResponse,
)
from memebubbles.parsers.exceptions import TransientNetworkError, ValidationError
from memebubbles.parsers.rate_limiter import RateLimiter

T = TypeVar("T")

USER_AGENT = "memebubbles/0.1.0"

_LISTINGS = TypeAdapter(list[DexScreenerListing])
_PAIRS = TypeAdapter(list[DexScreenerPair])
_PAIRS_RESPONSE = TypeAdapter(DexScreenerPairsResponse)


class DexScreenerClient:
    """Async REST client for the DexScreener public API (no auth required).

    Every call is a single attempt with a hard wall-clock timeout. Retrying
    is left to the caller, which dispatches on the raised error class.
    """

    def __init__(
        self,
        *,
        base_url: str = endpoints.BASE_URL,
        timeout_sec: float = 8.0,
        rate_limiter: RateLimiter | None = None,
        max_rps: float = 10.0,
        max_connections: int = 16,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout_sec = timeout_sec
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_sec,
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_connections,
            ),
            transport=transport,
        )
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)

    async def get_json(self, path: str, schema: TypeAdapter[T]) -> T:
        """GET ``path`` and validate the body against ``schema``.

        Raises TransientNetworkError on timeout/transport failure and
        ValidationError on non-2xx status, an undecodable body, a redirect
        loop or a payload of the wrong shape. No other httpx error escapes.
        """
        await self._rate_limiter.acquire()
        try:
            # wait_for cancels the request task, which tears down its connection
            response = await asyncio.wait_for(self._client.get(path), timeout=self._timeout_sec)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise TransientNetworkError("timeout", path) from e
        except httpx.TransportError as e:
            raise TransientNetworkError(type(e).__name__, path) from e
        except httpx.HTTPError as e:
            # DecodingError, TooManyRedirects and the like are not retried
            raise ValidationError(f"bad response: {type(e).__name__}", path=path) from e

        status = response.status_code
        if status < 200 or status >= 300:
            raise ValidationError(f"unexpected status {status}", path=path, status_code=status)

        try:
            payload: Any = response.json()
        except ValueError as e:
            raise ValidationError("response is not valid JSON", path=path, status_code=status) from e

        try:
            return schema.validate_python(payload)
        except pydantic.ValidationError as e:
            logger.debug(f"[DEX] Schema mismatch on {path}: {e.error_count()} errors")
            raise ValidationError("unexpected response shape", path=path, status_code=status) from e

    async def get_listings(self, source: ListingSource) -> list[DexScreenerListing]:
        """Fetch one listing feed, in the order the upstream reports it."""
        return await self.get_json(source.path, _LISTINGS)

    async def get_tokens_batch(self, chain_id: str, addresses: list[str]) -> list[DexScreenerPair]:
        """Get every pair for up to 30 token addresses on one chain."""
        if not addresses:
            return []
        path = endpoints.TOKENS_BATCH.format(chain=chain_id, addresses=",".join(addresses[:30]))
        return await self.get_json(path, _PAIRS)

    async def get_pair(self, chain_id: str, pair_address: str) -> DexScreenerPair | None:
        """Get exactly the requested pair, or None when the upstream does not know it."""
        path = endpoints.PAIR.format(chain=chain_id, pair=pair_address)
        data = await self.get_json(path, _PAIRS_RESPONSE)
        for pair in data.all_pairs():
            if pair.pairAddress.lower() == pair_address.lower():
                return pair
        return None

    async def close(self) -> None:
        await self._client.aclose()
