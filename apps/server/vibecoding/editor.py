"""Editor boundary: text-change notifications, visible ranges and decorations.

The service only depends on the protocols below.  :class:`HeadlessEditor` is
the in-process implementation used when the service runs standalone; edits
are fed in from the console or the HTTP API and decorations are recorded on
the view instead of being painted.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import NamedTuple, Protocol

LOGGER = logging.getLogger(__name__)


class LineRange(NamedTuple):
    """Inclusive range of visible lines."""

    start: int
    end: int


class Disposable(Protocol):
    def dispose(self) -> None: ...


class Decoration(Protocol):
    key: str
    offset_px: int

    def dispose(self) -> None: ...


class EditorView(Protocol):
    @property
    def visible_ranges(self) -> Sequence[LineRange]: ...

    def set_decorations(self, decoration: Decoration, ranges: Sequence[LineRange]) -> None: ...


class EditorHost(Protocol):
    def on_did_change_text(self, callback: Callable[[], None]) -> Disposable: ...

    def active_view(self) -> EditorView | None: ...

    def create_decoration(self, offset_px: int) -> Decoration: ...


# ---------------------------------------------------------------------------
# Headless implementation
# ---------------------------------------------------------------------------

_decoration_ids = itertools.count(1)


@dataclass(slots=True)
class HeadlessDecoration:
    offset_px: int
    key: str = field(default_factory=lambda: f"decoration-{next(_decoration_ids)}")
    disposed: bool = False

    def dispose(self) -> None:
        self.disposed = True


@dataclass(slots=True)
class HeadlessView:
    ranges: list[LineRange] = field(default_factory=lambda: [LineRange(0, 0)])
    applied: dict[str, tuple[int, list[LineRange]]] = field(default_factory=dict)

    @property
    def visible_ranges(self) -> list[LineRange]:
        return list(self.ranges)

    def set_decorations(self, decoration: Decoration, ranges: Sequence[LineRange]) -> None:
        if ranges:
            self.applied[decoration.key] = (decoration.offset_px, list(ranges))
        else:
            self.applied.pop(decoration.key, None)

    def current_offset_px(self) -> int:
        """Horizontal shift currently painted, ``0`` when no decoration is applied."""
        return sum(offset for offset, _ in self.applied.values())


class _Subscription:
    def __init__(self, listeners: list[Callable[[], None]], callback: Callable[[], None]):
        self._listeners = listeners
        self._callback = callback

    def dispose(self) -> None:
        if self._callback in self._listeners:
            self._listeners.remove(self._callback)


class HeadlessEditor:
    def __init__(self, view: HeadlessView | None = None):
        self._view = view
        self._listeners: list[Callable[[], None]] = []
        self.decorations: list[HeadlessDecoration] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def open_view(self, ranges: Sequence[LineRange] | None = None) -> HeadlessView:
        if self._view is None:
            self._view = HeadlessView()
        if ranges:
            self._view.ranges = [LineRange(*r) for r in ranges]
        return self._view

    def close_view(self) -> None:
        self._view = None

    def on_did_change_text(self, callback: Callable[[], None]) -> _Subscription:
        self._listeners.append(callback)
        return _Subscription(self._listeners, callback)

    def active_view(self) -> HeadlessView | None:
        return self._view

    def create_decoration(self, offset_px: int) -> HeadlessDecoration:
        decoration = HeadlessDecoration(offset_px=offset_px)
        self.decorations.append(decoration)
        return decoration

    def notify_change(self, count: int = 1) -> None:
        """Emit *count* text-change notifications to every subscriber."""
        for _ in range(max(0, count)):
            for listener in list(self._listeners):
                try:
                    listener()
                except Exception:
                    LOGGER.warning("Text change listener failed", exc_info=True)
