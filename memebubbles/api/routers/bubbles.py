"""Bubble endpoints: top boosts snapshot and the recently seen window."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from config.settings import settings
from memebubbles.api.dependencies import get_service
from memebubbles.api.schemas import BubblesResponse
from memebubbles.parsers.dexscreener import endpoints
from memebubbles.parsers.exceptions import UpstreamUnavailableError
from memebubbles.service import BubbleService

router = APIRouter(prefix="/api/v1/bubbles", tags=["bubbles"])

UPSTREAM_UNAVAILABLE = "Upstream data source is temporarily unavailable, please retry later"


@router.get("/top-boosts", response_model=BubblesResponse)
async def top_boosts(
    service: BubbleService = Depends(get_service),
    limit: int = Query(settings.snapshot_max_limit, ge=1, le=settings.snapshot_max_limit),
) -> BubblesResponse:
    """Current top list, served from cache."""
    try:
        view = await service.get_top_snapshot(limit)
    except UpstreamUnavailableError as e:
        logger.error(f"[API] Top boosts unavailable: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_UNAVAILABLE)
    return BubblesResponse.from_view(view, endpoint=endpoints.TOP_BOOSTS, limit=limit)


@router.get("/recent", response_model=BubblesResponse)
async def recent(
    service: BubbleService = Depends(get_service),
    limit: int = Query(settings.recent_capacity, ge=1, le=settings.recent_capacity),
) -> BubblesResponse:
    """Every token seen within the retention window, most recent first."""
    try:
        view = await service.get_recent_snapshot(limit)
    except UpstreamUnavailableError as e:
        logger.error(f"[API] Recent window unavailable: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_UNAVAILABLE)
    return BubblesResponse.from_view(view, endpoint="recent", limit=limit)
