"""Route package - assembles the sub-routers into one APIRouter.

Each sub-module defines a ``create_*_routes(service)`` function that returns
an ``APIRouter`` with endpoints scoped to a single concern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter

from .events import create_event_routes
from .health import create_health_routes
from .settings import create_settings_routes
from .websocket import create_websocket_routes

if TYPE_CHECKING:
    from ..service import VibeService


def create_router(service: VibeService) -> APIRouter:
    """Assemble all route groups into one router."""
    router = APIRouter()
    router.include_router(create_health_routes(service))
    router.include_router(create_settings_routes(service))
    router.include_router(create_event_routes(service))
    router.include_router(create_websocket_routes(service))
    return router
