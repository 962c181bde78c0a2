"""Feedback channels driven by the actuator.

Each channel exposes ``name`` and ``async activate(duration_ms)``.  A channel
that is unsupported on the current platform quietly does nothing.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from typing import Protocol

from .tone import SoundDeviceSink, synthesize_tone

LOGGER = logging.getLogger(__name__)

TERMUX_VIBRATE = "termux-vibrate"


class FeedbackChannel(Protocol):
    name: str

    async def activate(self, duration_ms: int) -> None: ...


class NativeVibrationChannel:
    """Device vibration through ``termux-vibrate`` when it is on ``PATH``."""

    name = "vibration"

    def __init__(self, command: str | None = None):
        self.command = command if command is not None else shutil.which(TERMUX_VIBRATE)
        self.activations: list[int] = []

    @property
    def supported(self) -> bool:
        return self.command is not None

    async def activate(self, duration_ms: int) -> None:
        if self.command is None or duration_ms <= 0:
            return
        self.activations.append(duration_ms)
        proc = await asyncio.create_subprocess_exec(
            self.command,
            "-f",
            "-d",
            str(duration_ms),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        await proc.wait()


class ToggleControl:
    """One switch of the alternating pair; activating it flips ``checked``."""

    def __init__(self, label: str, checked: bool = False):
        self.label = label
        self.checked = checked
        self.clicks = 0

    def click(self) -> None:
        self.checked = not self.checked
        self.clicks += 1


class ToggleHapticChannel:
    """Alternates activations between two toggle controls: A, B, A, B, ...

    The platform emits a short haptic tick when a switch changes state, and a
    control only ticks reliably when it was not the one touched last.  A
    terminal has no such switch, so the channel is off unless a caller that
    drives real toggle controls passes ``supported=True``.
    """

    name = "toggle"

    def __init__(self, supported: bool = False):
        self.supported = supported
        self.control_a = ToggleControl("A")
        self.control_b = ToggleControl("B")
        self.use_a_next = True
        self.activations: list[str] = []

    def seed(self) -> None:
        self.control_a.checked = False
        self.control_b.checked = True
        self.use_a_next = True

    def prime(self) -> None:
        """Throwaway activation of A that leaves the alternation untouched."""
        if self.supported:
            self.control_a.click()

    def activate_next(self) -> str | None:
        if not self.supported:
            return None
        control = self.control_a if self.use_a_next else self.control_b
        control.click()
        self.use_a_next = not self.use_a_next
        self.activations.append(control.label)
        return control.label

    async def activate(self, duration_ms: int) -> None:
        self.activate_next()


class ToneChannel:
    name = "tone"

    def __init__(self, sink: SoundDeviceSink | None = None):
        self.sink = sink or SoundDeviceSink()
        self._samples = synthesize_tone(sample_rate=self.sink.sample_rate)

    def arm(self) -> bool:
        return self.sink.arm()

    async def activate(self, duration_ms: int) -> None:
        await self.sink.play(self._samples)
