"""Tests for the WebSocket fan-out hub."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.websockets import WebSocketState

from vibecoding.ws_hub import WebSocketHub, WSConnection
from vibecoding_shared.contracts import VIBRATE_FRAME


def _make_ws(state: WebSocketState = WebSocketState.CONNECTED) -> AsyncMock:
    """Create a mock WebSocket with ``send_text`` and connection states."""
    ws = AsyncMock()
    ws.send_text = AsyncMock()
    ws.close = AsyncMock()
    ws.client_state = state
    ws.application_state = state
    return ws


@pytest.mark.asyncio
async def test_add_remove() -> None:
    hub = WebSocketHub()
    ws = _make_ws()
    await hub.add(ws)
    conns = await hub._snapshot()
    assert len(conns) == 1
    assert conns[0].websocket is ws
    await hub.remove(ws)
    assert await hub._snapshot() == []


@pytest.mark.asyncio
async def test_broadcast_sends_vibrate_frame_to_each_open_connection() -> None:
    hub = WebSocketHub()
    sockets = [_make_ws() for _ in range(3)]
    for ws in sockets:
        await hub.add(ws)
    delivered = await hub.broadcast()
    assert delivered == 3
    assert hub.sent_count == 3
    for ws in sockets:
        ws.send_text.assert_awaited_once_with(VIBRATE_FRAME)
    assert VIBRATE_FRAME == '{"type":"vibrate"}'


@pytest.mark.asyncio
async def test_broadcast_no_connections() -> None:
    hub = WebSocketHub()
    assert await hub.broadcast() == 0


@pytest.mark.asyncio
async def test_broadcast_skips_connections_that_are_not_open() -> None:
    hub = WebSocketHub()
    open_ws = _make_ws()
    closing_ws = _make_ws(WebSocketState.DISCONNECTED)
    await hub.add(open_ws)
    await hub.add(closing_ws)
    assert await hub.broadcast() == 1
    closing_ws.send_text.assert_not_awaited()
    assert hub.open_count() == 1
    assert len(hub) == 2


@pytest.mark.asyncio
async def test_failed_send_does_not_affect_other_recipients() -> None:
    hub = WebSocketHub()
    good_ws = _make_ws()
    bad_ws = _make_ws()
    bad_ws.send_text.side_effect = ConnectionError("gone")
    await hub.add(good_ws)
    await hub.add(bad_ws)
    assert await hub.broadcast() == 1
    good_ws.send_text.assert_awaited_once()


@pytest.mark.asyncio
async def test_slow_send_times_out() -> None:
    hub = WebSocketHub(send_timeout_s=0.05)
    fast_ws = _make_ws()
    slow_ws = _make_ws()

    async def _hang(_text: str) -> None:
        await asyncio.sleep(10)

    slow_ws.send_text.side_effect = _hang
    await hub.add(fast_ws)
    await hub.add(slow_ws)
    delivered = await asyncio.wait_for(hub.broadcast(), timeout=2.0)
    assert delivered == 1


@pytest.mark.asyncio
async def test_remove_after_settle_marks_closing_first() -> None:
    hub = WebSocketHub(settle_delay_s=0.05)
    ws = _make_ws()
    await hub.add(ws)
    task = asyncio.create_task(hub.remove_after_settle(ws))
    await asyncio.sleep(0)
    assert len(hub) == 1
    assert hub.open_count() == 0
    assert await hub.broadcast() == 0
    await task
    assert len(hub) == 0


@pytest.mark.asyncio
async def test_on_change_called_on_add_and_remove() -> None:
    on_change = MagicMock()
    hub = WebSocketHub(on_change=on_change)
    ws = _make_ws()
    await hub.add(ws)
    await hub.remove(ws)
    assert on_change.call_count == 2


@pytest.mark.asyncio
async def test_close_all_closes_open_sockets_and_empties_set() -> None:
    hub = WebSocketHub()
    ws_a = _make_ws()
    ws_b = _make_ws()
    ws_b.close.side_effect = RuntimeError("already closed")
    await hub.add(ws_a)
    await hub.add(ws_b)
    await hub.close_all()
    ws_a.close.assert_awaited_once_with(code=1001)
    assert len(hub) == 0


@pytest.mark.asyncio
async def test_broadcast_nowait_is_tracked() -> None:
    hub = WebSocketHub()
    ws = _make_ws()
    await hub.add(ws)
    task = hub.broadcast_nowait()
    assert await task == 1
    ws.send_text.assert_awaited_once_with(VIBRATE_FRAME)


def test_connection_open_state() -> None:
    conn = WSConnection(websocket=_make_ws())
    assert conn.is_open is True
    conn.closing = True
    assert conn.is_open is False
