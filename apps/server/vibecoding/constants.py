"""Shared timing constants for the host service."""

from __future__ import annotations

from typing import Final

from vibecoding_shared.contracts import MAX_PORT_RETRIES as MAX_PORT_RETRIES
from vibecoding_shared.contracts import NETWORK_PORTS

# ---------------------------------------------------------------------------
# Networking
# ---------------------------------------------------------------------------
DEFAULT_SERVER_PORT: Final[int] = NETWORK_PORTS["server_http"]
"""Preferred listening port; the next ``MAX_PORT_RETRIES`` ports are probed on conflict."""

LOOPBACK_IPV4: Final[str] = "127.0.0.1"

CLOSE_SETTLE_DELAY_S: Final[float] = 0.1
"""Delay between a socket closing and its removal from the hub, so the final
state can still be read by the status line."""

SEND_TIMEOUT_S: Final[float] = 0.5
"""Per-connection send timeout during fan-out."""

# ---------------------------------------------------------------------------
# Coalescing
# ---------------------------------------------------------------------------
THROTTLE_WINDOW_MS: Final[int] = 50
"""Minimum spacing between two emitted triggers (at most 20 per second)."""

MS_PER_S: Final[float] = 1000.0
