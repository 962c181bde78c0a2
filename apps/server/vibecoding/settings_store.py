from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path
from threading import RLock
from typing import Any

from .config import ShakeConfig, clamp_intensity

LOGGER = logging.getLogger(__name__)

SettingsListener = Callable[[dict[str, Any], set[str]], None]
"""Called with the new snapshot and the set of keys that changed."""

SETTING_KEYS = ("shakeEnabled", "shakeIntensity", "serverEnabled")


class SettingsStore:
    """Holds the live settings: shake toggle, shake intensity and server toggle.

    Changes are pushed to subscribers synchronously so the service can react
    without a restart.  When *persist_path* is given the settings survive a
    restart as a small JSON document.
    """

    def __init__(
        self,
        shake: ShakeConfig,
        server_enabled: bool = True,
        persist_path: Path | None = None,
    ) -> None:
        self._lock = RLock()
        self._persist_path = persist_path
        self._shake_enabled: bool = bool(shake.enabled)
        self._shake_intensity: int = clamp_intensity(shake.intensity)
        self._server_enabled: bool = bool(server_enabled)
        self._listeners: list[SettingsListener] = []

        self._load()

    # -- persistence -----------------------------------------------------------

    def _load(self) -> None:
        if not self._persist_path or not self._persist_path.exists():
            return
        try:
            raw = json.loads(self._persist_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            LOGGER.warning("Could not load settings from %s: %s", self._persist_path, exc)
            return
        if not isinstance(raw, dict):
            return

        with self._lock:
            if isinstance(raw.get("shakeEnabled"), bool):
                self._shake_enabled = raw["shakeEnabled"]
            if "shakeIntensity" in raw:
                self._shake_intensity = clamp_intensity(raw["shakeIntensity"])
            if isinstance(raw.get("serverEnabled"), bool):
                self._server_enabled = raw["serverEnabled"]

    def _persist(self) -> None:
        if not self._persist_path:
            return
        payload = self.snapshot()
        try:
            self._persist_path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._persist_path.with_suffix(".tmp")
            tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp.replace(self._persist_path)
        except OSError:
            LOGGER.warning("Could not persist settings to %s", self._persist_path, exc_info=True)

    # -- accessors -------------------------------------------------------------

    @property
    def shake_enabled(self) -> bool:
        with self._lock:
            return self._shake_enabled

    @property
    def shake_intensity(self) -> int:
        with self._lock:
            return self._shake_intensity

    @property
    def server_enabled(self) -> bool:
        with self._lock:
            return self._server_enabled

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "shakeEnabled": self._shake_enabled,
                "shakeIntensity": self._shake_intensity,
                "serverEnabled": self._server_enabled,
            }

    # -- mutation --------------------------------------------------------------

    def update(self, data: dict[str, Any]) -> dict[str, Any]:
        """Apply a partial update; unknown keys and ``None`` values are ignored."""
        changed: set[str] = set()
        with self._lock:
            if data.get("shakeEnabled") is not None:
                value = bool(data["shakeEnabled"])
                if value != self._shake_enabled:
                    self._shake_enabled = value
                    changed.add("shakeEnabled")
            if data.get("shakeIntensity") is not None:
                value_i = clamp_intensity(data["shakeIntensity"])
                if value_i != self._shake_intensity:
                    self._shake_intensity = value_i
                    changed.add("shakeIntensity")
            if data.get("serverEnabled") is not None:
                value = bool(data["serverEnabled"])
                if value != self._server_enabled:
                    self._server_enabled = value
                    changed.add("serverEnabled")
            snapshot = self.snapshot()
            listeners = list(self._listeners)
        if changed:
            self._persist()
            LOGGER.info("Settings changed: %s", ", ".join(sorted(changed)))
            for listener in listeners:
                try:
                    listener(snapshot, changed)
                except Exception:
                    LOGGER.warning("Settings listener failed", exc_info=True)
        return snapshot

    def subscribe(self, listener: SettingsListener) -> Callable[[], None]:
        """Register *listener*; the returned callable unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe
