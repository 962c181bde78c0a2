from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import WebSocket
from starlette.websockets import WebSocketState
from vibecoding_shared.contracts import VIBRATE_FRAME

from .constants import CLOSE_SETTLE_DELAY_S, SEND_TIMEOUT_S

LOGGER = logging.getLogger(__name__)

_SEND_ERROR_LOG_INTERVAL_S: float = 10.0
"""Minimum interval between logged send-error warnings to avoid log spam."""

GOING_AWAY_CLOSE_CODE = 1001


@dataclass(slots=True)
class WSConnection:
    websocket: WebSocket
    closing: bool = False

    @property
    def is_open(self) -> bool:
        return (
            not self.closing
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )


class WebSocketHub:
    """Tracks live client sockets and fans trigger notifications out to them.

    Fan-out is best effort: sockets that are not open are skipped, failed or
    slow sends are logged and dropped, nothing is retried.  The set itself is
    only changed by :meth:`add` and :meth:`remove`, which the connection
    handler calls on accept and on close.
    """

    def __init__(
        self,
        send_timeout_s: float = SEND_TIMEOUT_S,
        settle_delay_s: float = CLOSE_SETTLE_DELAY_S,
        on_change: Callable[[], None] | None = None,
    ):
        self._connections: dict[int, WSConnection] = {}
        self._lock = asyncio.Lock()
        self._send_timeout_s = send_timeout_s
        self._settle_delay_s = settle_delay_s
        self._last_send_error_log_ts = 0.0
        self._send_error_log_interval_s = _SEND_ERROR_LOG_INTERVAL_S
        self._broadcast_tasks: set[asyncio.Task] = set()
        self.on_change = on_change
        self.sent_count = 0

    def _notify_change(self) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change()
        except Exception:
            LOGGER.debug("Hub change callback failed", exc_info=True)

    async def add(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections[id(websocket)] = WSConnection(websocket=websocket)
        LOGGER.debug("WebSocket client registered (%d open)", self.open_count())
        self._notify_change()

    async def remove(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections.pop(id(websocket), None)
        self._notify_change()

    async def remove_after_settle(self, websocket: WebSocket) -> None:
        """Mark *websocket* closing, then drop it once the settle delay passed."""
        conn = self._connections.get(id(websocket))
        if conn is not None:
            conn.closing = True
        self._notify_change()
        await asyncio.sleep(self._settle_delay_s)
        await self.remove(websocket)

    async def _snapshot(self) -> list[WSConnection]:
        async with self._lock:
            return list(self._connections.values())

    def __len__(self) -> int:
        return len(self._connections)

    def open_count(self) -> int:
        return sum(1 for conn in list(self._connections.values()) if conn.is_open)

    async def broadcast(self, text: str = VIBRATE_FRAME) -> int:
        """Send *text* to every open connection; return how many sends succeeded."""
        conns = [conn for conn in await self._snapshot() if conn.is_open]
        if not conns:
            return 0

        async def _send(conn: WSConnection) -> bool:
            try:
                await asyncio.wait_for(
                    conn.websocket.send_text(text),
                    timeout=self._send_timeout_s,
                )
                return True
            except Exception:
                now = asyncio.get_running_loop().time()
                if (now - self._last_send_error_log_ts) >= self._send_error_log_interval_s:
                    self._last_send_error_log_ts = now
                    LOGGER.warning("WebSocket broadcast send failed; skipping.", exc_info=True)
                return False

        results = await asyncio.gather(*(_send(conn) for conn in conns))
        delivered = sum(1 for ok in results if ok)
        self.sent_count += delivered
        return delivered

    def broadcast_nowait(self, text: str = VIBRATE_FRAME) -> asyncio.Task:
        """Schedule :meth:`broadcast` from synchronous code such as a timer callback."""
        task = asyncio.get_running_loop().create_task(self.broadcast(text), name="ws-broadcast")
        self._broadcast_tasks.add(task)
        task.add_done_callback(self._broadcast_tasks.discard)
        return task

    async def close_all(self, code: int = GOING_AWAY_CLOSE_CODE) -> None:
        """Force-close every tracked connection and wait for pending fan-outs to end."""
        for task in list(self._broadcast_tasks):
            task.cancel()
        await asyncio.gather(*self._broadcast_tasks, return_exceptions=True)
        for conn in await self._snapshot():
            conn.closing = True
            if conn.websocket.application_state != WebSocketState.CONNECTED:
                continue
            try:
                await conn.websocket.close(code=code)
            except Exception:
                LOGGER.debug("Error closing WebSocket", exc_info=True)
        async with self._lock:
            self._connections.clear()
        self._notify_change()
