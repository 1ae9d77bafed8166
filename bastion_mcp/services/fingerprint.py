"""Credential-less OS fingerprinting.

Probes run in strict order and stop at the first positive signal:

1. TCP connect to the WinRM port -> Windows
2. TCP connect to the SSH port -> Linux
3. One ICMP echo, classified by reply TTL
4. Otherwise unknown

Each probe is tried once with a bounded timeout; a failed probe is a negative
signal, never an error.
"""

import logging

from bastion_mcp.models import OSClass
from bastion_mcp.utils.ping import check_host_online, icmp_ttl

logger = logging.getLogger(__name__)

WINRM_PORT = 5985
SSH_PORT = 22

# Default initial TTLs are 128 on Windows and 64 on Linux; allow a few hops
WINDOWS_TTL_RANGE = range(120, 129)
LINUX_TTL_RANGE = range(60, 65)


def classify_ttl(ttl: int | None) -> OSClass:
    """Classify an ICMP reply TTL.

    Args:
        ttl: TTL of the echo reply, or None if no reply arrived

    Returns:
        WINDOWS for 120-128, LINUX for 60-64, UNKNOWN otherwise
    """
    if ttl is None:
        return OSClass.UNKNOWN
    if ttl in WINDOWS_TTL_RANGE:
        return OSClass.WINDOWS
    if ttl in LINUX_TTL_RANGE:
        return OSClass.LINUX
    return OSClass.UNKNOWN


async def classify_os(
    address: str,
    probe_timeout: float = 3.0,
    winrm_port: int = WINRM_PORT,
    ssh_port: int = SSH_PORT,
) -> OSClass:
    """Classify a target as Linux or Windows without authenticating.

    Args:
        address: Host name or IP address of the target
        probe_timeout: Timeout in seconds for each individual probe
        winrm_port: WinRM HTTP port to probe
        ssh_port: SSH port to probe

    Returns:
        OSClass verdict; UNKNOWN if no probe gave a signal
    """
    if await check_host_online(address, winrm_port, timeout=probe_timeout):
        logger.debug("%s: port %d open, classified windows", address, winrm_port)
        return OSClass.WINDOWS

    if await check_host_online(address, ssh_port, timeout=probe_timeout):
        logger.debug("%s: port %d open, classified linux", address, ssh_port)
        return OSClass.LINUX

    ttl = await icmp_ttl(address, timeout=probe_timeout)
    verdict = classify_ttl(ttl)
    logger.debug("%s: no open ports, ICMP ttl=%s -> %s", address, ttl, verdict.value)
    return verdict
