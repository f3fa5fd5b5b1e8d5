"""FastAPI dependency injection."""

from __future__ import annotations

from fastapi import Request

from memebubbles.service import BubbleService


def get_service(request: Request) -> BubbleService:
    """Return the service the app was created with."""
    return request.app.state.service
