"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Probes and commands
    probe_timeout: float = field(default=3.0)
    connect_timeout: int = field(default=15)
    command_timeout: int = field(default=120)

    # Transports
    ssh_port: int = field(default=22)
    winrm_port: int = field(default=5985)
    winrm_transport: str = field(default="ntlm")
    unknown_os_fallback: str | None = field(default="ssh")

    # WSL bootstrap
    default_distro: str = field(default="Ubuntu")
    max_reboots: int = field(default=2)
    reboot_timeout: int = field(default=600)
    offline_timeout: int = field(default=120)
    poll_interval: int = field(default=10)
    stabilize_seconds: int = field(default=30)
    install_timeout: int = field(default=1800)

    # MCP server
    transport: str = field(default="http")
    http_host: str = field(default="0.0.0.0")
    http_port: int = field(default=8000)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)
    log_payloads: bool = field(default=False)
    slow_threshold_ms: int = field(default=1000)
    include_traceback: bool = field(default=False)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from BASTION_* environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            probe_timeout=cls._get_float("BASTION_PROBE_TIMEOUT", 3.0),
            connect_timeout=cls._get_int("BASTION_CONNECT_TIMEOUT", 15),
            command_timeout=cls._get_int("BASTION_COMMAND_TIMEOUT", 120),
            ssh_port=cls._get_int("BASTION_SSH_PORT", 22),
            winrm_port=cls._get_int("BASTION_WINRM_PORT", 5985),
            winrm_transport=os.getenv("BASTION_WINRM_TRANSPORT", "ntlm").lower(),
            unknown_os_fallback=cls._get_fallback(),
            default_distro=os.getenv("BASTION_DEFAULT_DISTRO", "Ubuntu"),
            max_reboots=cls._get_int("BASTION_MAX_REBOOTS", 2, minimum=0),
            reboot_timeout=cls._get_int("BASTION_REBOOT_TIMEOUT", 600),
            offline_timeout=cls._get_int("BASTION_OFFLINE_TIMEOUT", 120),
            poll_interval=cls._get_int("BASTION_POLL_INTERVAL", 10),
            stabilize_seconds=cls._get_int("BASTION_STABILIZE_SECONDS", 30, minimum=0),
            install_timeout=cls._get_int("BASTION_INSTALL_TIMEOUT", 1800),
            transport=cls._get_transport(),
            http_host=os.getenv("BASTION_HTTP_HOST", "0.0.0.0"),
            http_port=cls._get_int("BASTION_HTTP_PORT", 8000),
            log_level=os.getenv("BASTION_LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("BASTION_LOG_COLORS", True),
            log_payloads=cls._get_bool("BASTION_LOG_PAYLOADS", False),
            slow_threshold_ms=cls._get_int("BASTION_SLOW_THRESHOLD_MS", 1000),
            include_traceback=cls._get_bool("BASTION_INCLUDE_TRACEBACK", False),
        )

    @staticmethod
    def _get_int(key: str, default: int, minimum: int = 1) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid
            minimum: Smallest accepted value

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

        if parsed < minimum:
            logger.warning(
                "%s must be >= %d, got %d. Using default: %d", key, minimum, parsed, default
            )
            return default
        return parsed

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        """Get positive float from environment."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = float(value)
        except ValueError:
            logger.warning("Invalid float for %s: %s, using default %.1f", key, value, default)
            return default
        return parsed if parsed > 0 else default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_fallback() -> str | None:
        """Get the transport used when OS detection is inconclusive.

        Returns:
            "ssh", or None when the fallback is disabled
        """
        value = os.getenv("BASTION_UNKNOWN_OS_FALLBACK", "ssh").strip().lower()
        if value in ("", "none", "off", "false"):
            return None
        if value != "ssh":
            logger.warning("Unsupported BASTION_UNKNOWN_OS_FALLBACK=%s, using ssh", value)
        return "ssh"

    @staticmethod
    def _get_transport() -> str:
        """Get MCP transport from environment with validation.

        Returns:
            Transport type ("http" or "stdio")
        """
        transport = os.getenv("BASTION_TRANSPORT", "").lower()
        if transport in ("http", "stdio"):
            return transport
        return "http"
