"""Live settings endpoints - shake toggle, shake intensity, server toggle."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter

from ..api_models import SettingsRequest, SettingsResponse

if TYPE_CHECKING:
    from ..service import VibeService


def create_settings_routes(service: VibeService) -> APIRouter:
    router = APIRouter()

    @router.get("/api/settings", response_model=SettingsResponse)
    async def get_settings() -> SettingsResponse:
        return service.settings.snapshot()

    @router.put("/api/settings", response_model=SettingsResponse)
    async def update_settings(req: SettingsRequest) -> SettingsResponse:
        return service.settings.update(req.model_dump(exclude_none=True))

    return router
