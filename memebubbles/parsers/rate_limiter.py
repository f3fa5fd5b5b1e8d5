import asyncio


class RateLimiter:
    """Minimum-interval rate limiter shared by every call of one HTTP client.

    Concurrent workers serialize on the lock only for the spacing check,
    not for the request itself, so enrichment pools still overlap I/O.
    """

    def __init__(self, max_rps: float) -> None:
        self._min_interval = 1.0 / max_rps if max_rps > 0 else 0.0
        self._last_request = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        if self._min_interval <= 0:
            return
        async with self._lock:
            loop = asyncio.get_running_loop()
            now = loop.time()
            wait = self._min_interval - (now - self._last_request)
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request = loop.time()
