"""Wire contract shared by the host service and the remote client.

Frames are UTF-8 JSON text messages carrying a ``type`` tag.  Only the
``vibrate`` tag is defined; anything else is ignored by receivers.
"""

from __future__ import annotations

import json
from typing import Final

from pydantic import BaseModel, ConfigDict, ValidationError

MSG_VIBRATE: Final[str] = "vibrate"

WS_PATH: Final[str] = "/ws"
"""Route the host exposes its broadcast stream on."""

NETWORK_PORTS: Final[dict[str, int]] = {
    "server_http": 8765,
}

MAX_PORT_RETRIES: Final[int] = 10
"""Number of ports probed after the preferred one on a bind conflict."""


class WireMessage(BaseModel):
    """A single tagged frame.  Unknown keys are tolerated."""

    model_config = ConfigDict(extra="allow")

    type: str


def encode_message(msg_type: str) -> str:
    return json.dumps({"type": msg_type}, separators=(",", ":"))


VIBRATE_FRAME: Final[str] = encode_message(MSG_VIBRATE)
"""Pre-serialised vibrate notification, identical for every client."""


def parse_message(raw: str | bytes) -> str | None:
    """Return the ``type`` tag of *raw*, or ``None`` when the frame is malformed."""
    try:
        return WireMessage.model_validate_json(raw).type
    except (ValidationError, ValueError):
        return None
