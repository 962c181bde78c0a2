"""Turns each ``vibrate`` frame into concurrent haptic, audio and visual feedback."""

from __future__ import annotations

import asyncio
import logging

from .channels import NativeVibrationChannel, ToggleHapticChannel, ToneChannel
from .display import TerminalDisplay

LOGGER = logging.getLogger(__name__)

DEFAULT_VIBRATE_MS = 80
ARM_TEST_VIBRATE_MS = 100
FLASH_HOLD_S = 2 / 60
"""Two display frames at 60 Hz."""


class FeedbackActuator:
    """Dispatches one trigger to every channel without letting them block each other.

    Nothing happens until :meth:`arm` has run once; arming needs an explicit
    user action on the client.  Channel failures are logged and swallowed so a
    broken backend never stops the others.
    """

    def __init__(
        self,
        display: TerminalDisplay,
        vibration: NativeVibrationChannel | None = None,
        toggle: ToggleHapticChannel | None = None,
        tone: ToneChannel | None = None,
        vibrate_ms: int = DEFAULT_VIBRATE_MS,
    ):
        self.display = display
        self.vibration = vibration or NativeVibrationChannel()
        self.toggle = toggle or ToggleHapticChannel()
        self.tone = tone or ToneChannel()
        self.vibrate_ms = max(0, int(vibrate_ms))
        self.armed = False
        self.count = 0
        self._tasks: set[asyncio.Task] = set()
        self._flash_handle: asyncio.TimerHandle | None = None

    def set_vibrate_duration(self, ms: int) -> int:
        self.vibrate_ms = max(0, int(ms))
        return self.vibrate_ms

    def arm(self) -> bool:
        """Enable feedback; returns ``False`` if already armed."""
        if self.armed:
            return False
        self.armed = True
        self._spawn(self.vibration, ARM_TEST_VIBRATE_MS)
        audio_ok = self.tone.arm()
        self.toggle.seed()
        self.toggle.prime()
        LOGGER.info(
            "Feedback armed (vibration=%s, toggle=%s, audio=%s)",
            self.vibration.supported,
            self.toggle.supported,
            audio_ok,
        )
        return True

    def trigger(self) -> None:
        if not self.armed:
            return
        self._spawn(self.vibration, self.vibrate_ms)
        self._spawn(self.toggle, self.vibrate_ms)
        self._spawn(self.tone, self.vibrate_ms)
        self._flash()
        self.count += 1
        self.display.set_count(self.count)

    def _spawn(self, channel, duration_ms: int) -> None:
        task = asyncio.get_running_loop().create_task(
            self._run_channel(channel, duration_ms), name=f"feedback-{channel.name}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_channel(self, channel, duration_ms: int) -> None:
        try:
            await channel.activate(duration_ms)
        except Exception:
            LOGGER.debug("Feedback channel %s failed", channel.name, exc_info=True)

    def _flash(self) -> None:
        loop = asyncio.get_running_loop()
        if self._flash_handle is not None:
            self._flash_handle.cancel()
        self.display.set_flash(True)
        self._flash_handle = loop.call_later(FLASH_HOLD_S, self._flash_off)

    def _flash_off(self) -> None:
        self._flash_handle = None
        self.display.set_flash(False)

    async def drain(self) -> None:
        """Wait for in-flight channel activations."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        if self._flash_handle is not None:
            self._flash_handle.cancel()
            self._flash_handle = None
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
