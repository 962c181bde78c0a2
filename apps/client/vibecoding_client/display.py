"""Terminal status line for the client: connection state, flash, counter."""

from __future__ import annotations

import sys
from typing import TextIO

_FLASH_ON = "\x1b[7m"
_RESET = "\x1b[0m"


class TerminalDisplay:
    def __init__(self, stream: TextIO | None = None, ansi: bool | None = None):
        self.stream = stream if stream is not None else sys.stdout
        if ansi is None:
            isatty = getattr(self.stream, "isatty", None)
            ansi = bool(isatty()) if callable(isatty) else False
        self.ansi = ansi
        self.status = "Disconnected"
        self.count = 0
        self.flashing = False
        self.hint = ""

    def set_status(self, text: str) -> None:
        self.status = text
        self.render()

    def set_hint(self, text: str) -> None:
        self.hint = text
        self.render()

    def set_count(self, count: int) -> None:
        self.count = count
        self.render()

    def set_flash(self, on: bool) -> None:
        if on == self.flashing:
            return
        self.flashing = on
        self.render()

    def line(self) -> str:
        text = f"[{self.status}] vibrations: {self.count}"
        if self.hint:
            text = f"{text} | {self.hint}"
        return text

    def render(self) -> None:
        text = self.line()
        if self.ansi:
            prefix = _FLASH_ON if self.flashing else ""
            self.stream.write(f"\r\x1b[2K{prefix}{text}{_RESET}")
        elif not self.flashing:
            self.stream.write(text + "\n")
        self.stream.flush()
