"""End to end: host service on a real port, remote client over a real WebSocket."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
import websockets
from conftest import async_wait_until, free_port

from vibecoding.app import build_service
from vibecoding.commands import simulate_typing
from vibecoding.config import load_config
from vibecoding.editor import HeadlessEditor
from vibecoding_client.reconnect import BackoffReconnector, ConnectionState
from vibecoding_shared.contracts import VIBRATE_FRAME, WS_PATH


def _service(tmp_path: Path, editor: HeadlessEditor):
    cfg = load_config(tmp_path / "absent.yaml")
    cfg.server.host = "127.0.0.1"
    cfg.server.port = free_port()
    return build_service(cfg, editor)


@pytest.mark.asyncio
async def test_continuous_typing_is_rate_limited_on_the_wire(tmp_path: Path) -> None:
    editor = HeadlessEditor()
    editor.open_view()
    service = _service(tmp_path, editor)
    await service.start()
    url = f"ws://127.0.0.1:{service.port}{WS_PATH}"
    received: list[str] = []
    try:
        async with websockets.connect(url) as ws:
            assert await async_wait_until(lambda: service.hub.open_count() == 1)
            assert service.status_text.endswith("(1 connected)")

            async def _collect() -> None:
                async for message in ws:
                    received.append(message)

            collector = asyncio.create_task(_collect())
            await simulate_typing(editor, 0.5)
            await asyncio.sleep(0.2)
            collector.cancel()
            await asyncio.gather(collector, return_exceptions=True)
    finally:
        await service.dispose()

    assert all(message == VIBRATE_FRAME for message in received)
    assert 8 <= len(received) <= 11
    assert service.hub.sent_count == len(received)


@pytest.mark.asyncio
async def test_malformed_client_frames_are_ignored(tmp_path: Path) -> None:
    editor = HeadlessEditor()
    service = _service(tmp_path, editor)
    await service.start()
    try:
        async with websockets.connect(f"ws://127.0.0.1:{service.port}{WS_PATH}") as ws:
            await ws.send("not json")
            await ws.send('{"type":"hello"}')
            assert await async_wait_until(lambda: service.hub.open_count() == 1)
            editor.notify_change()
            assert await asyncio.wait_for(ws.recv(), timeout=2.0) == VIBRATE_FRAME
    finally:
        await service.dispose()


@pytest.mark.asyncio
async def test_binary_client_frames_keep_the_connection_open(tmp_path: Path) -> None:
    editor = HeadlessEditor()
    service = _service(tmp_path, editor)
    await service.start()
    try:
        async with websockets.connect(f"ws://127.0.0.1:{service.port}{WS_PATH}") as ws:
            await ws.send(b'{"type":"hello"}')
            await ws.send(b"\x00\xff")
            assert await async_wait_until(lambda: service.hub.open_count() == 1)
            await asyncio.sleep(0.05)
            assert service.hub.open_count() == 1
            editor.notify_change()
            assert await asyncio.wait_for(ws.recv(), timeout=2.0) == VIBRATE_FRAME
    finally:
        await service.dispose()


@pytest.mark.asyncio
async def test_client_backs_off_after_host_stops(tmp_path: Path) -> None:
    editor = HeadlessEditor()
    service = _service(tmp_path, editor)
    await service.start()
    vibrations: list[int] = []
    reconnector = BackoffReconnector(
        f"ws://127.0.0.1:{service.port}{WS_PATH}",
        on_vibrate=lambda: vibrations.append(1),
        base_delay_s=0.05,
        max_delay_s=0.4,
    )
    reconnector.start()
    try:
        assert await async_wait_until(lambda: reconnector.state == ConnectionState.CONNECTED)
        assert await async_wait_until(lambda: service.hub.open_count() == 1)
        editor.notify_change()
        assert await async_wait_until(lambda: len(vibrations) == 1)

        await service.stop()
        assert await async_wait_until(lambda: len(reconnector.scheduled_delays) >= 4)
        assert reconnector.scheduled_delays[:4] == [0.05, 0.1, 0.2, 0.4]
        assert reconnector.state != ConnectionState.CONNECTED

        await service.start()
        assert await async_wait_until(
            lambda: reconnector.state == ConnectionState.CONNECTED, timeout_s=3.0
        )
        assert reconnector.delay_s == 0.05
    finally:
        await reconnector.stop()
        await service.dispose()
