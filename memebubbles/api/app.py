"""FastAPI application factory for the bubbles API."""

from __future__ import annotations

import os

from fastapi import FastAPI
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.middleware.cors import CORSMiddleware

from memebubbles.service import BubbleService


def create_app(
    service: BubbleService,
    *,
    frontend_origin: str = "",
    rate_limit: str = "120/minute",
) -> FastAPI:
    """Build the FastAPI application around an already-wired service."""
    app = FastAPI(
        title="Memebubbles API",
        version="0.1.0",
        docs_url="/api/docs" if os.getenv("API_DEBUG") else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if os.getenv("API_DEBUG") else None,
    )
    app.state.service = service

    # Rate limiting (per remote address, applied to every route)
    app.state.limiter = Limiter(key_func=get_remote_address, default_limits=[rate_limit])
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[frontend_origin] if frontend_origin else ["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    from memebubbles.api.routers.bubbles import router as bubbles_router
    from memebubbles.api.routers.health import router as health_router

    app.include_router(health_router)
    app.include_router(bubbles_router)

    return app
