"""Entry point for the memebubbles API."""

import asyncio
import signal

from loguru import logger

from config.settings import Settings, settings
from memebubbles.api.server import run_api_server
from memebubbles.cache.recent import RecentWindowCache
from memebubbles.cache.scheduler import RefreshScheduler
from memebubbles.cache.snapshot import SnapshotCache
from memebubbles.parsers.aggregator import SourceAggregator
from memebubbles.parsers.dexscreener.client import DexScreenerClient
from memebubbles.parsers.dexscreener.endpoints import listing_sources
from memebubbles.parsers.enricher import MetadataEnricher
from memebubbles.service import BubbleService
from memebubbles.utils.logger import setup_logger


def build_service(
    cfg: Settings, client: DexScreenerClient
) -> tuple[BubbleService, RefreshScheduler]:
    """Wire both caches around one client; the caches are owned by the returned service."""
    aggregator = SourceAggregator(
        client,
        listing_sources(
            latest=cfg.enable_latest_boosts,
            profiles=cfg.enable_token_profiles,
            takeovers=cfg.enable_community_takeovers,
            promoted=cfg.enable_promoted_ads,
        ),
        max_attempts=cfg.listing_max_attempts,
        base_delay_sec=cfg.retry_base_delay_sec,
    )
    enricher = None
    if cfg.enable_enrichment:
        enricher = MetadataEnricher(
            client,
            batch_size=cfg.enrichment_batch_size,
            batch_concurrency=cfg.enrichment_batch_concurrency,
            pair_concurrency=cfg.pair_lookup_concurrency,
            max_attempts=cfg.enrichment_max_attempts,
            base_delay_sec=cfg.retry_base_delay_sec,
        )

    top = SnapshotCache(
        aggregator,
        enricher,
        default_limit=cfg.snapshot_max_limit,
        fresh_ttl_sec=cfg.snapshot_fresh_ttl_sec,
        stale_ttl_sec=cfg.snapshot_stale_ttl_sec,
    )
    recent = RecentWindowCache(
        aggregator,
        enricher,
        capacity=cfg.recent_capacity,
        observation_window=cfg.recent_observation_window,
        retention_sec=cfg.recent_retention_sec,
        metadata_max_age_sec=cfg.recent_metadata_max_age_sec,
        fresh_ttl_sec=cfg.recent_fresh_ttl_sec,
        stale_ttl_sec=cfg.recent_stale_ttl_sec,
    )
    scheduler = RefreshScheduler([top, recent], interval_sec=cfg.refresh_interval_sec)
    return BubbleService(top, recent), scheduler


async def main() -> None:
    setup_logger(json_logs=settings.json_logs, level=settings.log_level)
    logger.info("Starting memebubbles API...")

    client = DexScreenerClient(
        base_url=settings.dexscreener_base_url,
        timeout_sec=settings.dexscreener_timeout_sec,
        max_rps=settings.dexscreener_max_rps,
        max_connections=settings.dexscreener_max_connections,
    )
    service, scheduler = build_service(settings, client)

    # Graceful shutdown on SIGINT/SIGTERM
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    tasks = [
        asyncio.create_task(scheduler.run_loop(), name="refresh_scheduler"),
        asyncio.create_task(run_api_server(service), name="api_server"),
        asyncio.create_task(shutdown_event.wait(), name="shutdown"),
    ]

    # Wait for any task to finish (server exit, crash, or shutdown signal)
    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    for task in done:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Task {task.get_name()} crashed: {task.exception()}")

    for task in pending:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    await client.close()
    logger.info("Shutdown complete")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
