"""Client entry point: connect to a host and turn vibrate frames into feedback."""

from __future__ import annotations

import argparse
import asyncio
import logging
import shlex

from vibecoding_shared.contracts import NETWORK_PORTS, WS_PATH

from .actuator import DEFAULT_VIBRATE_MS, FeedbackActuator
from .display import TerminalDisplay
from .reconnect import BackoffReconnector

LOGGER = logging.getLogger(__name__)

DEFAULT_URL = f"ws://127.0.0.1:{NETWORK_PORTS['server_http']}{WS_PATH}"

ARM_HINT = "press Enter to enable vibration"
HELP_TEXT = "Commands: <Enter> arm | d <ms> vibration duration | r reconnect | q quit"


def handle_line(
    line: str,
    actuator: FeedbackActuator,
    reconnector: BackoffReconnector,
    stop_event: asyncio.Event,
) -> str:
    parts = shlex.split(line)
    if not parts:
        if actuator.arm():
            return "Vibration enabled."
        return ""
    cmd = parts[0].lower()
    if cmd in {"q", "quit", "exit"}:
        stop_event.set()
        return "Bye."
    if cmd in {"h", "help"}:
        return HELP_TEXT
    if cmd == "d":
        if len(parts) < 2:
            return f"Vibration duration={actuator.vibrate_ms}ms"
        return f"Vibration duration={actuator.set_vibrate_duration(int(parts[1]))}ms"
    if cmd == "r":
        reconnector.reconnect_now()
        return "Reconnecting..."
    return f"Unknown command: {cmd!r}. {HELP_TEXT}"


async def input_loop(
    actuator: FeedbackActuator,
    reconnector: BackoffReconnector,
    stop_event: asyncio.Event,
) -> None:
    while not stop_event.is_set():
        try:
            line = await asyncio.to_thread(input)
        except (EOFError, KeyboardInterrupt):
            stop_event.set()
            break
        try:
            out = handle_line(line, actuator, reconnector, stop_event)
        except ValueError as exc:
            out = f"Command error: {exc}"
        if actuator.armed:
            actuator.display.set_hint("")
        if out:
            print(out)


async def run(url: str, vibrate_ms: int) -> None:
    display = TerminalDisplay()
    display.set_hint(ARM_HINT)
    actuator = FeedbackActuator(display, vibrate_ms=vibrate_ms)
    reconnector = BackoffReconnector(
        url,
        on_vibrate=actuator.trigger,
        on_state=lambda _state, text: display.set_status(text),
    )
    stop_event = asyncio.Event()
    reconnector.start()
    input_task = asyncio.create_task(input_loop(actuator, reconnector, stop_event))
    try:
        await stop_event.wait()
    finally:
        input_task.cancel()
        await asyncio.gather(input_task, return_exceptions=True)
        await reconnector.stop()
        await actuator.close()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="VibeCoding remote feedback client")
    parser.add_argument("--url", default=DEFAULT_URL, help="Host WebSocket URL")
    parser.add_argument(
        "--duration",
        type=int,
        default=DEFAULT_VIBRATE_MS,
        help="Vibration duration in milliseconds",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run(args.url, args.duration))
    except KeyboardInterrupt:
        LOGGER.info("Interrupted; shutting down.")


if __name__ == "__main__":
    main()
