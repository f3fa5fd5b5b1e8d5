"""API server: runs uvicorn inside the existing asyncio event loop."""

from __future__ import annotations

import uvicorn
from loguru import logger

from config.settings import settings
from memebubbles.service import BubbleService


async def run_api_server(service: BubbleService) -> None:
    """Start uvicorn serving the bubbles API.

    Designed to run as an asyncio task alongside the refresh scheduler.
    Uses ``uvicorn.Server.serve()`` which is fully async.
    """
    from memebubbles.api.app import create_app

    app = create_app(
        service,
        frontend_origin=settings.frontend_origin,
        rate_limit=settings.api_rate_limit,
    )
    config = uvicorn.Config(
        app=app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="warning",
        log_config=None,  # records go through loguru, see setup_logger
        loop="none",  # use the existing event loop
    )
    server = uvicorn.Server(config)
    logger.info(f"API starting on http://{settings.api_host}:{settings.api_port}")
    await server.serve()
