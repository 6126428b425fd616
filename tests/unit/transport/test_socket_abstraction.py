"""Unit tests for BulbConnection.

Tests cover:
- Connect (success with keepalive, timeout, refusal)
- Writes (success, closed socket, stalled drain, broken pipe)
- Line iteration across chunk boundaries, EOF and read errors
- Idempotent close
"""

from __future__ import annotations

import asyncio
import socket
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from yeelight_lan.transport.socket_abstraction import BulbConnection


class BulbConnectionTestHarness(BulbConnection):
    """Expose protected connection state controls for testing."""

    def mark_open(
        self,
        *,
        reader: MagicMock | None = None,
        writer: MagicMock | None = None,
    ) -> None:
        self._open = True
        self.reader = reader
        self.writer = writer


def _reader(*chunks: bytes | Exception) -> MagicMock:
    reader = MagicMock()
    reader.read = AsyncMock(side_effect=list(chunks))
    return reader


async def _collect(conn: BulbConnection) -> list[str]:
    return [line async for line in conn.lines()]


@pytest.fixture
def conn() -> BulbConnectionTestHarness:
    return BulbConnectionTestHarness("192.168.1.50", connect_timeout=0.1, write_timeout=0.1)


@pytest.mark.asyncio
async def test_connect_enables_keepalive(conn: BulbConnectionTestHarness) -> None:
    raw_socket = MagicMock()
    writer = MagicMock()
    writer.get_extra_info = MagicMock(return_value=raw_socket)
    with patch("asyncio.open_connection", AsyncMock(return_value=(MagicMock(), writer))) as mock_open:
        result = await conn.connect()

    assert result is True
    assert conn.is_connected is True
    mock_open.assert_awaited_once_with("192.168.1.50", 55443)
    writer.get_extra_info.assert_called_once_with("socket")
    raw_socket.setsockopt.assert_called_once_with(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)


@pytest.mark.asyncio
async def test_connect_timeout(conn: BulbConnectionTestHarness) -> None:
    async def slow_connect(*_args: object, **_kwargs: object) -> tuple[MagicMock, MagicMock]:
        await asyncio.sleep(1.0)
        return MagicMock(), MagicMock()

    with patch("asyncio.open_connection", side_effect=slow_connect):
        result = await conn.connect()

    assert result is False
    assert conn.is_connected is False


@pytest.mark.asyncio
async def test_connect_refused(conn: BulbConnectionTestHarness) -> None:
    with patch("asyncio.open_connection", side_effect=ConnectionRefusedError("refused")):
        result = await conn.connect()

    assert result is False
    assert conn.is_connected is False


@pytest.mark.asyncio
async def test_send_writes_line(conn: BulbConnectionTestHarness) -> None:
    writer = MagicMock()
    writer.drain = AsyncMock()
    conn.mark_open(writer=writer)

    result = await conn.send(b'{"id": 1, "method": "toggle", "params": []}\r\n')

    assert result is True
    writer.write.assert_called_once_with(b'{"id": 1, "method": "toggle", "params": []}\r\n')
    writer.drain.assert_awaited_once()


@pytest.mark.asyncio
async def test_send_when_closed(conn: BulbConnectionTestHarness) -> None:
    assert await conn.send(b"x\r\n") is False


@pytest.mark.asyncio
async def test_send_stalled_drain(conn: BulbConnectionTestHarness) -> None:
    writer = MagicMock()

    async def slow_drain() -> None:
        await asyncio.sleep(1.0)

    writer.drain = slow_drain
    conn.mark_open(writer=writer)

    assert await conn.send(b"x\r\n") is False


@pytest.mark.asyncio
async def test_send_broken_pipe_closes(conn: BulbConnectionTestHarness) -> None:
    writer = MagicMock()
    writer.write = MagicMock(side_effect=BrokenPipeError("gone"))
    writer.drain = AsyncMock()
    conn.mark_open(writer=writer)

    assert await conn.send(b"x\r\n") is False
    assert conn.is_connected is False


@pytest.mark.asyncio
async def test_lines_reassembled_across_chunks(conn: BulbConnectionTestHarness) -> None:
    conn.mark_open(reader=_reader(b'{"id": 1, "result": ["ok"]}\r\n{"method": "pr', b'ops", "params": {"power": "on"}}\r\n', b""))

    lines = await _collect(conn)

    assert lines == ['{"id": 1, "result": ["ok"]}', '{"method": "props", "params": {"power": "on"}}']
    assert conn.is_connected is False


@pytest.mark.asyncio
async def test_lines_stop_on_read_error(conn: BulbConnectionTestHarness) -> None:
    conn.mark_open(reader=_reader(b"first\r\n", ConnectionResetError("reset")))

    assert await _collect(conn) == ["first"]
    assert conn.is_connected is False


@pytest.mark.asyncio
async def test_lines_when_closed(conn: BulbConnectionTestHarness) -> None:
    assert await _collect(conn) == []


@pytest.mark.asyncio
async def test_close_is_idempotent(conn: BulbConnectionTestHarness) -> None:
    await conn.close()

    writer = MagicMock()
    writer.wait_closed = AsyncMock()
    conn.mark_open(writer=writer)
    await conn.close()
    await conn.close()

    writer.close.assert_called_once()
    writer.wait_closed.assert_awaited_once()
    assert conn.is_connected is False
    assert conn.writer is None


@pytest.mark.asyncio
async def test_close_error_ignored(conn: BulbConnectionTestHarness) -> None:
    writer = MagicMock()
    writer.close = MagicMock(side_effect=OSError("already closed"))
    writer.wait_closed = AsyncMock()
    conn.mark_open(writer=writer)

    await conn.close()

    assert conn.is_connected is False


def test_repr(conn: BulbConnectionTestHarness) -> None:
    assert repr(conn) == "BulbConnection(192.168.1.50:55443, closed)"
