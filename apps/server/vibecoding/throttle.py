"""Coalesce a bursty stream of edit notifications into a rate-limited trigger."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .constants import MS_PER_S, THROTTLE_WINDOW_MS

LOGGER = logging.getLogger(__name__)


class EventThrottle:
    """Leading-edge throttle with a single-flight trailing timer.

    ``notify()`` fires *action* immediately when at least one window has
    passed since the previous emission.  Otherwise it schedules one deferred
    emission for the remaining wait; further notifications are absorbed by
    that pending timer.  Consecutive emissions are therefore never closer
    than one window, and a burst is never left without an emission.
    """

    def __init__(
        self,
        action: Callable[[], None],
        window_s: float = THROTTLE_WINDOW_MS / MS_PER_S,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self._action = action
        self.window_s = window_s
        self._loop = loop or asyncio.get_running_loop()
        self._last_emit: float | None = None
        self._pending: asyncio.TimerHandle | None = None
        self._disposed = False
        self.emit_count = 0

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def notify(self) -> None:
        if self._disposed:
            return
        now = self._loop.time()
        elapsed = None if self._last_emit is None else now - self._last_emit
        if elapsed is None or elapsed >= self.window_s:
            self._last_emit = now
            self._emit()
        elif self._pending is None:
            self._pending = self._loop.call_later(self.window_s - elapsed, self._fire_pending)

    def _fire_pending(self) -> None:
        self._pending = None
        if self._disposed:
            return
        self._last_emit = self._loop.time()
        self._emit()

    def _emit(self) -> None:
        self.emit_count += 1
        try:
            self._action()
        except Exception:
            LOGGER.warning("Throttled action failed", exc_info=True)

    def cancel(self) -> None:
        """Drop the pending deferred emission, if any."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def dispose(self) -> None:
        self._disposed = True
        self.cancel()
