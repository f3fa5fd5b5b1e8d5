import asyncio

from loguru import logger

from memebubbles.cache.base import TieredCache


class RefreshScheduler:
    """Refreshes every cache on a fixed interval, regardless of request traffic.

    The first tick runs immediately so the caches warm up at startup.
    A failed tick leaves the previous cached state in place.
    """

    def __init__(self, caches: list[TieredCache], *, interval_sec: float = 30.0) -> None:
        self._caches = list(caches)
        self._interval = interval_sec
        self.ticks = 0

    async def tick(self) -> None:
        self.ticks += 1
        results = await asyncio.gather(
            *(cache.trigger_refresh().wait() for cache in self._caches),
            return_exceptions=True,
        )
        for cache, result in zip(self._caches, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.warning(f"[SCHED] {cache.name} refresh failed: {result}")

    async def run_loop(self) -> None:
        """Periodic refresh loop, runs until cancelled."""
        logger.info(f"[SCHED] Refreshing {len(self._caches)} caches every {self._interval:.0f}s")
        while True:
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"[SCHED] Unexpected tick error: {e}")
            await asyncio.sleep(self._interval)
