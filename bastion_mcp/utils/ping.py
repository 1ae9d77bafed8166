"""Host reachability probes."""

import asyncio
import logging
import re
import sys

logger = logging.getLogger(__name__)

_TTL_PATTERN = re.compile(r"ttl[=:](\d+)", re.IGNORECASE)


async def check_host_online(hostname: str, port: int, timeout: float = 2.0) -> bool:
    """Check if a host is reachable via TCP connection.

    Args:
        hostname: Host to check.
        port: Port to connect to.
        timeout: Connection timeout in seconds.

    Returns:
        True if host is reachable, False otherwise.
    """
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(hostname, port),
            timeout=timeout,
        )
        writer.close()
        await writer.wait_closed()
        return True
    except (TimeoutError, OSError):
        return False


def _ping_command(hostname: str, timeout: float) -> list[str]:
    """Build a single-echo ping invocation for the local platform."""
    if sys.platform.startswith("win"):
        return ["ping", "-n", "1", "-w", str(int(timeout * 1000)), hostname]
    return ["ping", "-c", "1", "-W", str(max(1, int(timeout))), hostname]


def parse_ttl(output: str) -> int | None:
    """Extract the TTL from ping output."""
    match = _TTL_PATTERN.search(output)
    return int(match.group(1)) if match else None


async def icmp_ttl(hostname: str, timeout: float = 2.0) -> int | None:
    """Send one ICMP echo through the system ping binary and read the TTL.

    Args:
        hostname: Host to ping.
        timeout: Reply timeout in seconds.

    Returns:
        TTL of the echo reply, or None if no reply arrived.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *_ping_command(hostname, timeout),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        logger.debug("ping unavailable: %s", e)
        return None

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout + 1)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        return None

    return parse_ttl(stdout.decode("utf-8", errors="replace"))
