"""Edit-event intake for editors that run out of process."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException

from ..api_models import EditEventRequest, EditEventResponse
from ..editor import HeadlessEditor, LineRange

if TYPE_CHECKING:
    from ..service import VibeService


def create_event_routes(service: VibeService) -> APIRouter:
    router = APIRouter()

    @router.post("/api/events/edit", response_model=EditEventResponse)
    async def post_edit(req: EditEventRequest) -> EditEventResponse:
        editor = service.editor
        if not isinstance(editor, HeadlessEditor):
            raise HTTPException(status_code=409, detail="Editor events are delivered in-process")
        if req.visible_ranges:
            editor.open_view([LineRange(start, end) for start, end in req.visible_ranges])
        editor.notify_change(req.count)
        return {"accepted": req.count, "triggers": service.trigger_count}

    return router
