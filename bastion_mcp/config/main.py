"""Application configuration.

Delegates to specialized components:
- Settings: Environment variables
- HostKeyPolicy: SSH host key handling
"""

import logging
import os
from dataclasses import dataclass, field

from bastion_mcp.config.host_keys import HostKeyPolicy
from bastion_mcp.config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Application configuration.

    Aggregates environment settings and the SSH host key policy.
    """

    settings: Settings = field(default_factory=Settings)
    host_keys: HostKeyPolicy = field(default_factory=HostKeyPolicy)

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment.

        Returns:
            Configured instance with all components initialized
        """
        return cls(
            settings=Settings.from_env(),
            host_keys=HostKeyPolicy(known_hosts_path=os.getenv("BASTION_KNOWN_HOSTS")),
        )

    # Delegate to settings for convenience
    @property
    def probe_timeout(self) -> float:
        """Per-probe timeout in seconds."""
        return self.settings.probe_timeout

    @property
    def connect_timeout(self) -> int:
        """Session establishment timeout in seconds."""
        return self.settings.connect_timeout

    @property
    def command_timeout(self) -> int:
        """Remote command timeout in seconds."""
        return self.settings.command_timeout

    @property
    def default_distro(self) -> str:
        """WSL distribution used for Windows targets."""
        return self.settings.default_distro

    @property
    def max_reboots(self) -> int:
        """Reboot budget per target."""
        return self.settings.max_reboots

    @property
    def transport(self) -> str:
        """MCP transport type (http or stdio)."""
        return self.settings.transport

    @property
    def http_host(self) -> str:
        """HTTP server bind address."""
        return self.settings.http_host

    @property
    def http_port(self) -> int:
        """HTTP server port."""
        return self.settings.http_port

    @property
    def known_hosts_path(self) -> str | None:
        """Path to known_hosts file or None for trust on first use."""
        return self.host_keys.get_known_hosts_path()
