"""Process entry point: config -> service -> operator console."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .commands import command_loop
from .config import AppConfig, load_config
from .editor import HeadlessEditor
from .service import VibeService
from .settings_store import SettingsStore

LOGGER = logging.getLogger(__name__)


def build_service(config: AppConfig, editor: HeadlessEditor | None = None) -> VibeService:
    settings = SettingsStore(
        shake=config.shake,
        server_enabled=config.server.enabled,
        persist_path=config.settings_path,
    )
    return VibeService(config, settings, editor or HeadlessEditor())


async def run(config: AppConfig, interactive: bool) -> None:
    service = build_service(config)
    stop_event = asyncio.Event()
    tasks: list[asyncio.Task] = []
    try:
        if config.server.autostart:
            await service.start()
        if interactive:
            tasks.append(asyncio.create_task(command_loop(service, stop_event)))
        await stop_event.wait()
    finally:
        stop_event.set()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await service.dispose()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the VibeCoding host service")
    parser.add_argument("--config", type=Path, default=None, help="Path to config YAML")
    parser.add_argument(
        "--no-interactive",
        action="store_true",
        help="Do not read operator commands from stdin",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    config = load_config(args.config)
    logging.basicConfig(
        level=getattr(logging, config.logging.level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    interactive = not args.no_interactive and sys.stdin.isatty()
    try:
        asyncio.run(run(config, interactive))
    except KeyboardInterrupt:
        LOGGER.info("Interrupted; shutting down.")


if __name__ == "__main__":
    main()
