"""SSH host key policy.

Targets are provisioned before anyone has collected their host keys, so the
default is trust on first use: unknown keys are accepted and a warning is
logged. Pointing BASTION_KNOWN_HOSTS at a known_hosts file switches to
verification against that file.
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class HostKeyPolicy:
    """SSH host key acceptance policy."""

    def __init__(self, known_hosts_path: str | None = None) -> None:
        """Initialize host key policy.

        Args:
            known_hosts_path: Path to known_hosts file, or None/'none' for
                trust on first use

        Raises:
            FileNotFoundError: If a known_hosts path is given but missing
        """
        self._known_hosts = self._resolve_known_hosts(known_hosts_path)

    def _resolve_known_hosts(self, env_value: str | None) -> str | None:
        """Resolve known_hosts path.

        Returns:
            Path to known_hosts file or None for trust on first use

        Raises:
            FileNotFoundError: If the configured file does not exist
        """
        if not env_value or env_value.lower() == "none":
            logger.warning(
                "SSH host keys are accepted on first use (no known_hosts configured). "
                "Set BASTION_KNOWN_HOSTS to verify host keys."
            )
            return None

        path = Path(os.path.expanduser(env_value))
        if not path.exists():
            raise FileNotFoundError(
                f"known_hosts file not found: {path}\n\n"
                f"To fix this:\n"
                f"1. Add host keys: ssh-keyscan <hostname> >> {path}\n"
                f"2. Or unset BASTION_KNOWN_HOSTS to accept keys on first use"
            )
        return str(path)

    def get_known_hosts_path(self) -> str | None:
        """Get path to known_hosts file.

        Returns:
            Path string or None if keys are trusted on first use
        """
        return self._known_hosts

    @property
    def trust_on_first_use(self) -> bool:
        """Whether unknown host keys are accepted."""
        return self._known_hosts is None
