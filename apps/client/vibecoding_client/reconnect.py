"""Client session supervisor: connect, dispatch frames, back off on loss."""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException
from vibecoding_shared.contracts import MSG_VIBRATE, parse_message

LOGGER = logging.getLogger(__name__)

BASE_RECONNECT_DELAY_S: float = 1.0
"""Delay before the first reconnect; restored whenever a session opens."""

MAX_RECONNECT_DELAY_S: float = 30.0

_CONNECT_TIMEOUT_S: float = 10.0


class ConnectionState(enum.StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


STATUS_TEXT: dict[ConnectionState, str] = {
    ConnectionState.DISCONNECTED: "Disconnected",
    ConnectionState.CONNECTING: "Connecting...",
    ConnectionState.CONNECTED: "Connected",
}


def next_delay(delay_s: float, max_delay_s: float = MAX_RECONNECT_DELAY_S) -> float:
    return min(delay_s * 2.0, max_delay_s)


class BackoffReconnector:
    """Keeps at most one WebSocket session open to *url*.

    Every ended or failed session schedules one reconnect after the current
    delay, which then doubles up to the ceiling.  Reaching the open state
    resets the delay.  ``vibrate`` frames call *on_vibrate* once each; any
    other or malformed frame is ignored.
    """

    def __init__(
        self,
        url: str,
        on_vibrate: Callable[[], None],
        on_state: Callable[[ConnectionState, str], None] | None = None,
        base_delay_s: float = BASE_RECONNECT_DELAY_S,
        max_delay_s: float = MAX_RECONNECT_DELAY_S,
        connect: Callable[..., Any] = websockets.connect,
    ):
        self.url = url
        self._on_vibrate = on_vibrate
        self._on_state = on_state
        self.base_delay_s = base_delay_s
        self.max_delay_s = max_delay_s
        self._connect = connect
        self.delay_s = base_delay_s
        self.state = ConnectionState.DISCONNECTED
        self.session: Any | None = None
        self.last_error: str | None = None
        self.scheduled_delays: list[float] = []
        self._wake = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._stopped = False

    # -- state -----------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        if state == self.state:
            return
        self.state = state
        LOGGER.debug("Connection state -> %s", state)
        if self._on_state is not None:
            try:
                self._on_state(state, STATUS_TEXT[state])
            except Exception:
                LOGGER.debug("State callback failed", exc_info=True)

    # -- lifecycle -------------------------------------------------------------

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._stopped = False
            self._task = asyncio.create_task(self.run(), name="ws-reconnector")
        return self._task

    async def stop(self) -> None:
        """Cancel the pending reconnect and close the open session, if any."""
        self._stopped = True
        session, self.session = self.session, None
        self._wake.set()
        if session is not None:
            try:
                await session.close()
            except Exception:
                LOGGER.debug("Error closing session", exc_info=True)
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        self._set_state(ConnectionState.DISCONNECTED)

    def reconnect_now(self) -> None:
        """Cut the current backoff wait short.  Ignored while a session is active."""
        if self.session is None and not self._stopped:
            self._wake.set()

    # -- session loop ----------------------------------------------------------

    async def run(self) -> None:
        while not self._stopped:
            if self.session is None:
                await self._run_session()
            if self._stopped:
                break
            self._set_state(ConnectionState.DISCONNECTED)
            delay = self.delay_s
            self.scheduled_delays.append(delay)
            self.delay_s = next_delay(delay, self.max_delay_s)
            LOGGER.info("Disconnected; reconnecting in %gs", delay)
            await self._wait_retry(delay)

    async def _wait_retry(self, delay_s: float) -> None:
        self._wake.clear()
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=delay_s)
        except TimeoutError:
            pass

    async def _run_session(self) -> None:
        self._set_state(ConnectionState.CONNECTING)
        try:
            async with asyncio.timeout(_CONNECT_TIMEOUT_S):
                session = await self._connect(self.url)
        except (OSError, TimeoutError, WebSocketException) as exc:
            self.last_error = str(exc) or type(exc).__name__
            LOGGER.debug("Connect to %s failed: %s", self.url, self.last_error)
            return
        if self._stopped:
            await session.close()
            return
        self.session = session
        self.delay_s = self.base_delay_s
        self.last_error = None
        self._set_state(ConnectionState.CONNECTED)
        try:
            async for message in session:
                self.handle_message(message)
        except ConnectionClosed as exc:
            self.last_error = str(exc)
        except OSError as exc:
            # Transport errors funnel into the same close path as a normal close.
            self.last_error = str(exc) or type(exc).__name__
            await session.close()
        finally:
            if self.session is session:
                self.session = None

    def handle_message(self, message: str | bytes) -> bool:
        """Dispatch one inbound frame; return ``True`` when it was a vibrate."""
        if parse_message(message) != MSG_VIBRATE:
            LOGGER.debug("Ignoring frame %.60r", message)
            return False
        try:
            self._on_vibrate()
        except Exception:
            LOGGER.warning("Vibrate handler failed", exc_info=True)
        return True
