"""Service orchestration: edit events -> throttle -> {shake, WS fan-out}.

Boundary note for maintainers:
- Keep this module focused on lifecycle and wiring, not on the state machines.
- Coalescing lives in ``throttle.py``, fan-out in ``ws_hub.py``, the shake
  animation in ``shake.py`` and binding/serving in ``server.py``.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from vibecoding_shared.contracts import WS_PATH

from .config import AppConfig
from .constants import MS_PER_S
from .editor import Disposable, EditorHost
from .server import STATIC_DIR, ConnectionServer, local_ipv4
from .settings_store import SettingsStore
from .shake import ShakeEngine
from .throttle import EventThrottle
from .ws_hub import WebSocketHub

LOGGER = logging.getLogger(__name__)

_SHAKE_KEYS = {"shakeEnabled", "shakeIntensity"}


class VibeService:
    """Owns every moving part of the host side.

    Lifecycle is construct -> :meth:`start` -> :meth:`stop` -> :meth:`dispose`.
    ``start`` and ``stop`` are idempotent; ``start`` can be called again after
    ``stop`` but not after ``dispose``.
    """

    def __init__(
        self,
        config: AppConfig,
        settings: SettingsStore,
        editor: EditorHost,
        static_dir: Path = STATIC_DIR,
    ):
        self.config = config
        self.settings = settings
        self.editor = editor
        self.static_dir = static_dir
        self.hub = WebSocketHub(on_change=self._refresh_status)
        self.server: ConnectionServer | None = None
        self.throttle: EventThrottle | None = None
        self.shake_engine: ShakeEngine | None = None
        self.running = False
        self.address = local_ipv4()
        self.status_text = ""
        self.last_notice = ""
        self.trigger_count = 0
        self._subscription: Disposable | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._lifecycle_lock = asyncio.Lock()
        self._background: set[asyncio.Task] = set()
        self._disposed = False
        self._unsubscribe_settings = settings.subscribe(self._on_settings_changed)

    # -- notices ---------------------------------------------------------------

    def _notice(self, message: str, level: int = logging.INFO) -> None:
        self.last_notice = message
        LOGGER.log(level, message)

    # -- status ----------------------------------------------------------------

    @property
    def port(self) -> int | None:
        return self.server.port if self.server is not None else None

    @property
    def url(self) -> str | None:
        if self.port is None:
            return None
        return f"http://{self.address}:{self.port}"

    @property
    def ws_url(self) -> str | None:
        if self.port is None:
            return None
        return f"ws://{self.address}:{self.port}{WS_PATH}"

    def _refresh_status(self) -> None:
        if not self.running:
            text = ""
        elif self.port is None:
            text = "Vibration: server off"
        else:
            text = f"Vibration: {self.address}:{self.port} ({self.hub.open_count()} connected)"
        if text != self.status_text:
            self.status_text = text
            LOGGER.debug("Status: %s", text or "<hidden>")

    def status_dict(self) -> dict[str, Any]:
        shake = self.shake_engine
        return {
            "running": self.running,
            "address": self.address,
            "port": self.port,
            "url": self.url,
            "connections": self.hub.open_count(),
            "triggers": self.trigger_count,
            "messages_sent": self.hub.sent_count,
            "shakes": shake.shake_count if shake is not None else 0,
            "shake_in_progress": shake.in_progress if shake is not None else False,
            "status_text": self.status_text,
        }

    # -- lifecycle -------------------------------------------------------------

    async def start(self) -> bool:
        """Start listening for edits (and serving clients when enabled)."""
        async with self._lifecycle_lock:
            if self._disposed:
                raise RuntimeError("VibeService has been disposed")
            if self.running:
                self._notice("VibeCoding server is already running.")
                return True
            self._loop = asyncio.get_running_loop()
            self.address = local_ipv4()
            if self.settings.server_enabled and not await self._start_server():
                return False
            self.shake_engine = ShakeEngine(
                self.editor,
                enabled=self.settings.shake_enabled,
                intensity=self.settings.shake_intensity,
                loop=self._loop,
            )
            self.throttle = EventThrottle(
                self._on_trigger,
                window_s=self.config.throttle.window_ms / MS_PER_S,
                loop=self._loop,
            )
            self._subscription = self.editor.on_did_change_text(self.throttle.notify)
            self.running = True
            self._refresh_status()
            if self.url is not None:
                self._notice(f"VibeCoding started: {self.url}")
            else:
                self._notice("VibeCoding started (network server disabled).")
            return True

    async def stop(self) -> None:
        async with self._lifecycle_lock:
            if not self.running:
                return
            if self.throttle is not None:
                self.throttle.dispose()
                self.throttle = None
            if self._subscription is not None:
                self._subscription.dispose()
                self._subscription = None
            await self._stop_server()
            if self.shake_engine is not None:
                self.shake_engine.dispose()
                self.shake_engine = None
            self.running = False
            self._refresh_status()
            self._notice("VibeCoding server stopped.")

    async def dispose(self) -> None:
        if self._disposed:
            return
        await self.stop()
        self._unsubscribe_settings()
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*self._background, return_exceptions=True)
        self._disposed = True

    async def _start_server(self) -> bool:
        server = ConnectionServer(
            self,
            host=self.config.server.host,
            port=self.config.server.port,
            max_port_retries=self.config.server.max_port_retries,
            static_dir=self.static_dir,
        )
        try:
            await server.start()
        except OSError as exc:
            self._notice(f"Failed to start server: {exc}", logging.ERROR)
            return False
        self.server = server
        self._refresh_status()
        return True

    async def _stop_server(self) -> None:
        server = self.server
        if server is None:
            return
        await server.stop()
        self.server = None
        self._refresh_status()

    # -- triggers --------------------------------------------------------------

    def _on_trigger(self) -> None:
        self.trigger_count += 1
        if self.shake_engine is not None:
            self.shake_engine.shake()
        if self.server is not None and self.server.running:
            self.hub.broadcast_nowait()

    # -- live settings ---------------------------------------------------------

    def _on_settings_changed(self, snapshot: dict[str, Any], changed: set[str]) -> None:
        if changed & _SHAKE_KEYS and self.shake_engine is not None:
            self.shake_engine.reconfigure(snapshot["shakeEnabled"], snapshot["shakeIntensity"])
        if "serverEnabled" in changed and self._loop is not None:
            self._loop.call_soon_threadsafe(self._spawn_server_toggle, snapshot["serverEnabled"])

    def _spawn_server_toggle(self, enabled: bool) -> None:
        task = asyncio.get_running_loop().create_task(
            self._apply_server_enabled(enabled), name="server-toggle"
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _apply_server_enabled(self, enabled: bool) -> None:
        async with self._lifecycle_lock:
            if not self.running:
                return
            if enabled and self.server is None:
                if await self._start_server():
                    self._notice(f"VibeCoding server enabled: {self.url}")
            elif not enabled and self.server is not None:
                await self._stop_server()
                self._notice("VibeCoding server disabled.")
