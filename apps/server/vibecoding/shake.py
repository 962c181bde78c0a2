"""Editor shake: a short right/left/centre perturbation of the visible text."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, NamedTuple

from .config import DEFAULT_INTENSITY, clamp_intensity
from .constants import MS_PER_S
from .editor import Decoration, EditorHost, EditorView, LineRange

LOGGER = logging.getLogger(__name__)


class IntensityProfile(NamedTuple):
    right_offset_px: int
    left_offset_px: int
    step_ms: int


INTENSITY_PROFILES: dict[int, IntensityProfile] = {
    1: IntensityProfile(1, -1, 30),
    2: IntensityProfile(2, -2, 40),
    3: IntensityProfile(4, -4, 50),
    4: IntensityProfile(6, -6, 60),
    5: IntensityProfile(10, -10, 70),
}


def profile_for(
    intensity: Any,
    table: dict[int, IntensityProfile] | None = None,
) -> IntensityProfile:
    """Resolve the profile for *intensity*, falling back to the level-3 profile."""
    table = INTENSITY_PROFILES if table is None else table
    level = clamp_intensity(intensity)
    return table.get(level) or INTENSITY_PROFILES[DEFAULT_INTENSITY]


class ShakeEngine:
    """Three-step shake animation, guarded so runs never overlap.

    Step 1 applies the "shift right" decoration, step 2 (one step later)
    swaps to "shift left", step 3 (a second step later) clears both and
    releases the guard.  Requests arriving while a run is in progress are
    dropped.
    """

    def __init__(
        self,
        editor: EditorHost,
        enabled: bool = True,
        intensity: int = DEFAULT_INTENSITY,
        loop: asyncio.AbstractEventLoop | None = None,
        profiles: dict[int, IntensityProfile] | None = None,
    ):
        self._editor = editor
        self._loop = loop or asyncio.get_running_loop()
        self._profiles = INTENSITY_PROFILES if profiles is None else profiles
        self.enabled = enabled
        self.profile = profile_for(intensity, self._profiles)
        self._right: Decoration | None = None
        self._left: Decoration | None = None
        self._view: EditorView | None = None
        self._ranges: list[LineRange] = []
        self._timer: asyncio.TimerHandle | None = None
        self._disposed = False
        self.in_progress = False
        self.shake_count = 0
        self._build_decorations()

    def _build_decorations(self) -> None:
        self._dispose_decorations()
        self._right = self._editor.create_decoration(self.profile.right_offset_px)
        self._left = self._editor.create_decoration(self.profile.left_offset_px)

    def _dispose_decorations(self) -> None:
        for decoration in (self._right, self._left):
            if decoration is not None:
                decoration.dispose()
        self._right = None
        self._left = None

    def reconfigure(self, enabled: bool, intensity: Any) -> None:
        """Apply new settings in place; an in-flight shake is cut short."""
        self._abort()
        self.enabled = enabled
        self.profile = profile_for(intensity, self._profiles)
        if not self._disposed:
            self._build_decorations()
        LOGGER.debug("Shake reconfigured enabled=%s profile=%s", enabled, self.profile)

    def shake(self) -> bool:
        """Start a shake; return ``False`` when the request was ignored."""
        if self._disposed or self.in_progress or not self.enabled:
            return False
        view = self._editor.active_view()
        if view is None:
            return False
        assert self._right is not None and self._left is not None
        self.in_progress = True
        self.shake_count += 1
        self._view = view
        self._ranges = list(view.visible_ranges)
        view.set_decorations(self._right, self._ranges)
        view.set_decorations(self._left, [])
        self._timer = self._loop.call_later(self._step_s, self._swap_left)
        return True

    @property
    def _step_s(self) -> float:
        return self.profile.step_ms / MS_PER_S

    def _swap_left(self) -> None:
        self._timer = None
        if self._disposed or self._view is None:
            return
        assert self._right is not None and self._left is not None
        self._view.set_decorations(self._left, self._ranges)
        self._view.set_decorations(self._right, [])
        self._timer = self._loop.call_later(self._step_s, self._settle)

    def _settle(self) -> None:
        self._timer = None
        if self._disposed:
            return
        self._clear_view()
        self.in_progress = False

    def _clear_view(self) -> None:
        if self._view is not None:
            for decoration in (self._right, self._left):
                if decoration is not None:
                    self._view.set_decorations(decoration, [])
        self._view = None
        self._ranges = []

    def _abort(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._clear_view()
        self.in_progress = False

    def dispose(self) -> None:
        self._abort()
        self._disposed = True
        self._dispose_decorations()
