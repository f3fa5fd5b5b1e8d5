"""Health check: reports cache state, never triggers a refresh."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from memebubbles.api.dependencies import get_service
from memebubbles.api.schemas import HealthResponse
from memebubbles.service import BubbleService

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(service: BubbleService = Depends(get_service)) -> HealthResponse:
    return HealthResponse.from_report(service.get_health())
