"""Input validation utilities."""

import re
from typing import Final

# WSL distribution names: letters, digits, dot, dash, underscore
DISTRO_PATTERN: Final = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,63}$")


def validate_host(host: str) -> str:
    """Validate a host name or address.

    Args:
        host: The host name to validate

    Returns:
        Validated host name

    Raises:
        ValueError: If host name is invalid
    """
    host = host.strip() if host else host
    if not host:
        raise ValueError("Host cannot be empty")

    if len(host) > 253:
        raise ValueError(f"Host name too long: {len(host)} chars")

    # Check for suspicious characters that could enable injection
    suspicious_chars = ["/", "\\", ";", "&", "|", "$", "`", " ", "'", '"', "\n", "\r", "\x00"]
    for char in suspicious_chars:
        if char in host:
            raise ValueError(f"Host contains invalid characters: {host!r}")

    return host


def validate_distro(name: str) -> str:
    """Validate a WSL distribution name.

    Args:
        name: Distribution name, e.g. ``Ubuntu`` or ``Ubuntu-22.04``

    Returns:
        Stripped distribution name

    Raises:
        ValueError: If the name contains characters unsafe for wsl.exe
    """
    name = (name or "").strip()
    if not DISTRO_PATTERN.match(name):
        raise ValueError(f"Invalid WSL distribution name: {name!r}")
    return name
