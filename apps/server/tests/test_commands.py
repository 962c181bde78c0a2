from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from vibecoding.app import build_service, parse_args
from vibecoding.commands import HELP_TEXT, apply_command
from vibecoding.config import load_config
from vibecoding.editor import HeadlessEditor


@pytest.fixture
def service(tmp_path: Path):
    cfg = load_config(tmp_path / "absent.yaml")
    cfg.server.enabled = False
    editor = HeadlessEditor()
    editor.open_view()
    return build_service(cfg, editor)


@pytest.mark.asyncio
async def test_help_and_unknown(service) -> None:
    stop = asyncio.Event()
    assert await apply_command(service, "help", stop) == HELP_TEXT
    assert "Unknown command" in await apply_command(service, "dance", stop)
    assert await apply_command(service, "   ", stop) == ""


@pytest.mark.asyncio
async def test_start_status_stop(service) -> None:
    stop = asyncio.Event()
    try:
        assert await apply_command(service, "status", stop) == "VibeCoding is stopped."
        out = await apply_command(service, "start", stop)
        assert out == "VibeCoding started (network server disabled)."
        assert "already running" in await apply_command(service, "start", stop)
        assert "triggers=0" in await apply_command(service, "status", stop)
        assert await apply_command(service, "stop", stop) == "VibeCoding server stopped."
        assert await apply_command(service, "stop", stop) == "VibeCoding is not running."
    finally:
        await service.dispose()


@pytest.mark.asyncio
async def test_edit_and_type_fire_triggers(service) -> None:
    stop = asyncio.Event()
    try:
        await service.start()
        assert await apply_command(service, "edit 3", stop) == "Sent 3 edit notification(s)."
        assert service.trigger_count == 1
        await asyncio.sleep(0.1)
        assert service.trigger_count == 2

        out = await apply_command(service, "type 300", stop)
        assert out.startswith("Typed ")
        assert 4 <= service.trigger_count - 2 <= 8
    finally:
        await service.dispose()


@pytest.mark.asyncio
async def test_settings_commands(service) -> None:
    stop = asyncio.Event()
    assert await apply_command(service, "shake off", stop) == "Shake disabled."
    assert await apply_command(service, "intensity 9", stop) == "Shake intensity=5."
    assert await apply_command(service, "server on", stop) == "Server enabled."
    assert service.settings.snapshot() == {
        "shakeEnabled": False,
        "shakeIntensity": 5,
        "serverEnabled": True,
    }
    with pytest.raises(ValueError):
        await apply_command(service, "shake maybe", stop)
    assert await apply_command(service, "intensity", stop) == "Missing value. Try: help"


@pytest.mark.asyncio
async def test_quit_sets_stop_event(service) -> None:
    stop = asyncio.Event()
    await apply_command(service, "quit", stop)
    assert stop.is_set()


def test_parse_args() -> None:
    args = parse_args(["--config", "x.yaml", "--no-interactive"])
    assert str(args.config) == "x.yaml"
    assert args.no_interactive is True
