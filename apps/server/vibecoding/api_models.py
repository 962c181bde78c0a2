"""Pydantic request/response models for the VibeCoding HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class EditEventRequest(BaseModel):
    count: int = Field(default=1, ge=1, le=1000)
    visible_ranges: list[tuple[int, int]] | None = None


class SettingsRequest(BaseModel):
    shakeEnabled: bool | None = None
    shakeIntensity: int | None = Field(default=None, ge=1, le=5)
    serverEnabled: bool | None = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    running: bool
    connections: int


class StatusResponse(BaseModel):
    running: bool
    address: str
    port: int | None
    url: str | None
    connections: int
    triggers: int
    messages_sent: int
    shakes: int
    shake_in_progress: bool
    status_text: str


class SettingsResponse(BaseModel):
    shakeEnabled: bool
    shakeIntensity: int
    serverEnabled: bool


class EditEventResponse(BaseModel):
    accepted: int
    triggers: int
