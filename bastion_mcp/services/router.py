"""Single entry point for running a shell command on a target.

The router fingerprints the target (unless the caller already knows its OS),
then delegates to SSH for Linux or to the WSL guest behind WinRM for Windows.
Inconclusive fingerprints fall back to SSH on a best-effort basis.
"""

import logging
from typing import TYPE_CHECKING

from bastion_mcp.models import CommandResult, OSClass
from bastion_mcp.services.errors import OSUndetermined, TransportUnavailable
from bastion_mcp.services.fingerprint import classify_os
from bastion_mcp.services.tooling import ssh_client_available, winrm_client_available
from bastion_mcp.utils.validation import validate_host

if TYPE_CHECKING:
    from bastion_mcp.models import Target
    from bastion_mcp.services.ssh_transport import SSHTransport
    from bastion_mcp.services.winrm_transport import WinRMTransport

logger = logging.getLogger(__name__)


class CommandRouter:
    """Routes commands to the transport matching the target's OS.

    Holds no per-call state; one instance may serve many targets concurrently.
    """

    def __init__(
        self,
        ssh: "SSHTransport",
        winrm: "WinRMTransport",
        default_distro: str = "Ubuntu",
        probe_timeout: float = 3.0,
        unknown_os_fallback: str | None = "ssh",
    ) -> None:
        """Initialize router.

        Args:
            ssh: SSH transport used for Linux targets
            winrm: WinRM transport used for Windows targets
            default_distro: WSL distribution commands run in on Windows targets
            probe_timeout: Per-probe fingerprinting timeout in seconds
            unknown_os_fallback: "ssh" to try SSH on inconclusive fingerprints,
                None to fail with OSUndetermined instead
        """
        self.ssh = ssh
        self.winrm = winrm
        self.default_distro = default_distro
        self.probe_timeout = probe_timeout
        self.unknown_os_fallback = unknown_os_fallback

    async def classify(self, address: str) -> OSClass:
        """Fingerprint a target with the router's probe settings."""
        return await classify_os(
            address,
            probe_timeout=self.probe_timeout,
            winrm_port=self.winrm.port,
            ssh_port=self.ssh.port,
        )

    async def run_command(
        self,
        target: "Target",
        command: str,
        os_class: OSClass | None = None,
    ) -> CommandResult:
        """Run a shell command on the target through the matching transport.

        Args:
            target: Host and credentials
            command: Shell command line
            os_class: Known OS of the target; skips fingerprinting when given

        Returns:
            CommandResult; transport-level failures are in transport_error

        Raises:
            TransportUnavailable: If neither SSH nor WinRM client tooling is installed
            OSUndetermined: If the OS is unknown and the SSH fallback is disabled
        """
        validate_host(target.address)
        if not (ssh_client_available() or winrm_client_available()):
            raise TransportUnavailable(
                "Neither SSH (asyncssh) nor WinRM (pywinrm) client tooling is installed",
                target.address,
            )

        if os_class is None:
            os_class = await self.classify(target.address)
            logger.info("Classified %s as %s", target.address, os_class.value)
        else:
            logger.debug("Using caller-supplied OS %s for %s", os_class.value, target.address)

        if os_class is OSClass.WINDOWS:
            result = await self.winrm.exec_in_guest(target, command, self.default_distro)
        elif os_class is OSClass.LINUX:
            result = await self.ssh.exec(target, command)
        elif self.unknown_os_fallback == "ssh":
            logger.warning(
                "Could not determine OS of %s, falling back to SSH (best effort)",
                target.address,
            )
            result = await self.ssh.exec(target, command)
        else:
            raise OSUndetermined(
                "OS fingerprinting was inconclusive and no fallback transport is configured",
                target.address,
            )

        if result.transport_error is not None:
            logger.warning("Command on %s failed: %s", target.address, result.transport_error)
        elif not result.succeeded:
            logger.info(
                "Command on %s reported failure (exit_code=%s)",
                target.address,
                result.exit_code,
            )
        return result
