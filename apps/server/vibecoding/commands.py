"""Interactive operator console for the host service."""

from __future__ import annotations

import asyncio
import logging
import shlex
from typing import TYPE_CHECKING

from .editor import HeadlessEditor

if TYPE_CHECKING:
    from .service import VibeService

LOGGER = logging.getLogger(__name__)

HELP_TEXT = (
    "Commands: start | stop | status | edit [count] | type <ms> | "
    "shake on|off | intensity <1-5> | server on|off | help | quit"
)

_TYPE_INTERVAL_S = 0.01
"""Spacing of synthetic keystrokes produced by ``type``."""

_TYPE_MAX_MS = 60_000


def _parse_on_off(value: str) -> bool:
    lowered = value.lower()
    if lowered in {"on", "true", "1", "yes"}:
        return True
    if lowered in {"off", "false", "0", "no"}:
        return False
    raise ValueError(f"Expected on|off, got {value!r}")


async def simulate_typing(editor: HeadlessEditor, duration_s: float) -> int:
    """Emit one text change every 10 ms for *duration_s*; return how many were sent."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + duration_s
    sent = 0
    while loop.time() < deadline:
        editor.notify_change()
        sent += 1
        await asyncio.sleep(_TYPE_INTERVAL_S)
    return sent


async def apply_command(service: VibeService, line: str, stop_event: asyncio.Event) -> str:
    parts = shlex.split(line)
    if not parts:
        return ""

    cmd = parts[0].lower()
    if cmd in {"quit", "exit"}:
        stop_event.set()
        return "Stopping VibeCoding..."
    if cmd == "help":
        return HELP_TEXT
    if cmd == "start":
        await service.start()
        return service.last_notice
    if cmd == "stop":
        if not service.running:
            return "VibeCoding is not running."
        await service.stop()
        return service.last_notice
    if cmd == "status":
        if not service.running:
            return "VibeCoding is stopped."
        status = service.status_dict()
        return (
            f"{service.status_text} triggers={status['triggers']} "
            f"sent={status['messages_sent']} shakes={status['shakes']}"
        )

    if cmd in {"edit", "type"}:
        editor = service.editor
        if not isinstance(editor, HeadlessEditor):
            return "Synthetic edits need the headless editor."
        if cmd == "edit":
            count = max(1, int(parts[1])) if len(parts) >= 2 else 1
            editor.notify_change(count)
            return f"Sent {count} edit notification(s)."
        if len(parts) < 2:
            return "Usage: type <ms>"
        duration_ms = max(0, min(_TYPE_MAX_MS, int(parts[1])))
        before = service.trigger_count
        sent = await simulate_typing(editor, duration_ms / 1000.0)
        return f"Typed {sent} keystroke(s); {service.trigger_count - before} trigger(s) fired."

    if len(parts) < 2:
        return "Missing value. Try: help"
    value = parts[1]

    if cmd == "shake":
        service.settings.update({"shakeEnabled": _parse_on_off(value)})
        return f"Shake {'enabled' if service.settings.shake_enabled else 'disabled'}."
    if cmd == "intensity":
        service.settings.update({"shakeIntensity": int(value)})
        return f"Shake intensity={service.settings.shake_intensity}."
    if cmd == "server":
        service.settings.update({"serverEnabled": _parse_on_off(value)})
        return f"Server {'enabled' if service.settings.server_enabled else 'disabled'}."

    return f"Unknown command: {cmd!r}. Try: help"


async def command_loop(service: VibeService, stop_event: asyncio.Event) -> None:
    print("Type 'help' for commands.")
    while not stop_event.is_set():
        try:
            line = await asyncio.to_thread(input, "vibe> ")
        except (EOFError, KeyboardInterrupt):
            stop_event.set()
            break
        try:
            out = await apply_command(service, line, stop_event)
        except Exception as exc:
            LOGGER.debug("Command failed", exc_info=True)
            print(f"Command error: {exc}")
            continue
        if out:
            print(out)
