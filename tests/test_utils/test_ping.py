"""Tests for host reachability probes."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bastion_mcp.utils.ping import check_host_online, icmp_ttl, parse_ttl


@pytest.mark.asyncio
async def test_check_host_online_reachable() -> None:
    """Returns True when the port accepts a connection."""
    mock_writer = MagicMock()
    mock_writer.close = MagicMock()
    mock_writer.wait_closed = AsyncMock()

    with patch("asyncio.open_connection", new_callable=AsyncMock) as mock_conn:
        mock_conn.return_value = (MagicMock(), mock_writer)

        result = await check_host_online("192.168.1.1", 5985)

        assert result is True
        mock_writer.close.assert_called_once()


@pytest.mark.asyncio
async def test_check_host_online_refused() -> None:
    """Returns False when the connection is refused."""
    with patch("asyncio.open_connection", new_callable=AsyncMock) as mock_conn:
        mock_conn.side_effect = ConnectionRefusedError()

        assert await check_host_online("192.168.1.1", 22) is False


@pytest.mark.asyncio
async def test_check_host_online_timeout() -> None:
    """Returns False when the connection times out."""

    async def hang(host: str, port: int) -> tuple:
        await asyncio.sleep(10)
        return (MagicMock(), MagicMock())

    with patch("asyncio.open_connection", side_effect=hang):
        assert await check_host_online("192.168.1.1", 22, timeout=0.05) is False


def test_parse_ttl_linux_output() -> None:
    """Parses the TTL from iputils ping output."""
    output = "64 bytes from 10.0.0.5: icmp_seq=1 ttl=64 time=0.3 ms"
    assert parse_ttl(output) == 64


def test_parse_ttl_windows_output() -> None:
    """Parses the TTL from Windows ping output."""
    output = "Reply from 10.0.0.7: bytes=32 time<1ms TTL=128"
    assert parse_ttl(output) == 128


def test_parse_ttl_no_reply() -> None:
    """Returns None when no reply line is present."""
    assert parse_ttl("Request timed out.") is None


@pytest.mark.asyncio
async def test_icmp_ttl_reads_reply() -> None:
    """Returns the TTL reported by the ping binary."""
    proc = MagicMock()
    proc.communicate = AsyncMock(return_value=(b"64 bytes from x: ttl=125 time=1 ms", b""))

    with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as mock_exec:
        mock_exec.return_value = proc

        assert await icmp_ttl("10.0.0.7", timeout=1.0) == 125


@pytest.mark.asyncio
async def test_icmp_ttl_missing_binary() -> None:
    """Returns None when the ping binary cannot be started."""
    with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as mock_exec:
        mock_exec.side_effect = FileNotFoundError("ping")

        assert await icmp_ttl("10.0.0.7") is None


@pytest.mark.asyncio
async def test_icmp_ttl_kills_hung_process() -> None:
    """A ping that outlives its timeout is killed and yields None."""

    async def hang() -> tuple:
        await asyncio.sleep(10)
        return (b"", b"")

    proc = MagicMock()
    proc.communicate = hang
    proc.kill = MagicMock()
    proc.wait = AsyncMock()

    with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as mock_exec:
        mock_exec.return_value = proc

        assert await icmp_ttl("10.0.0.7", timeout=0.01) is None

    proc.kill.assert_called_once()
