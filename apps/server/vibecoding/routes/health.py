"""Health and status endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter

from ..api_models import HealthResponse, StatusResponse

if TYPE_CHECKING:
    from ..service import VibeService


def create_health_routes(service: VibeService) -> APIRouter:
    router = APIRouter()

    @router.get("/api/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return {
            "status": "ok",
            "running": service.running,
            "connections": service.hub.open_count(),
        }

    @router.get("/api/status", response_model=StatusResponse)
    async def status() -> StatusResponse:
        return service.status_dict()

    return router
