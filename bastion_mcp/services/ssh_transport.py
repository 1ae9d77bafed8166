"""Password-authenticated SSH command execution.

Host key policy is trust on first use unless a known_hosts file is
configured: unknown keys are accepted without verification, which leaves the
first connection open to a man-in-the-middle. Callers porting this client to
a hostile network should configure BASTION_KNOWN_HOSTS.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from bastion_mcp.models import CommandResult
from bastion_mcp.services.errors import (
    TransportAuthFailure,
    TransportFailure,
    TransportUnavailable,
    Unreachable,
)
from bastion_mcp.services.tooling import ssh_client_available

if TYPE_CHECKING:
    from bastion_mcp.models import Target

logger = logging.getLogger(__name__)


class SSHTransport:
    """Runs single non-interactive commands over SSH."""

    def __init__(
        self,
        port: int = 22,
        connect_timeout: float = 15,
        command_timeout: float = 120,
        known_hosts: str | None = None,
    ) -> None:
        """Initialize SSH transport.

        Args:
            port: SSH server port
            connect_timeout: Seconds allowed for connection and authentication
            command_timeout: Seconds allowed for the remote command
            known_hosts: Path to known_hosts file, or None for trust on first use
        """
        self.port = port
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.known_hosts = known_hosts

    async def exec(self, target: "Target", command: str) -> CommandResult:
        """Execute a command and capture combined stdout/stderr.

        Args:
            target: Host and password credentials
            command: Shell command line to run

        Returns:
            CommandResult; channel failures are reported in transport_error

        Raises:
            TransportUnavailable: If the SSH client library is not installed
        """
        if not ssh_client_available():
            raise TransportUnavailable("SSH client library (asyncssh) is not installed")

        import asyncssh

        logger.info(
            "Connecting over SSH to %s@%s:%d",
            target.user,
            target.address,
            self.port,
        )
        if self.known_hosts is None:
            logger.warning("Accepting SSH host key of %s without verification", target.address)

        try:
            conn = await asyncssh.connect(
                target.address,
                port=self.port,
                username=target.credentials.user,
                password=target.credentials.secret,
                known_hosts=self.known_hosts,
                client_keys=None,
                agent_path=None,
                preferred_auth="password,keyboard-interactive",
                connect_timeout=self.connect_timeout,
            )
        except asyncssh.PermissionDenied as e:
            logger.error("SSH authentication to %s failed: %s", target.address, e)
            return CommandResult.failed(
                TransportAuthFailure(f"SSH authentication failed: {e.reason}", target.address)
            )
        except (TimeoutError, OSError) as e:
            logger.warning("SSH to %s unreachable: %s", target.address, str(e) or "timed out")
            return CommandResult.failed(
                Unreachable(f"SSH unreachable: {str(e) or 'connection timed out'}", target.address)
            )
        except asyncssh.Error as e:
            logger.error("SSH handshake with %s failed: %s", target.address, e)
            return CommandResult.failed(TransportFailure(f"SSH failure: {e}", target.address))

        async with conn:
            try:
                result = await asyncio.wait_for(
                    conn.run(command, check=False, stderr=asyncssh.STDOUT),
                    timeout=self.command_timeout,
                )
            except TimeoutError:
                logger.warning(
                    "SSH command on %s exceeded %ss", target.address, self.command_timeout
                )
                return CommandResult.failed(
                    TransportFailure(
                        f"command timed out after {self.command_timeout}s", target.address
                    )
                )
            except asyncssh.Error as e:
                logger.error("SSH session to %s failed: %s", target.address, e)
                return CommandResult.failed(
                    TransportFailure(f"SSH failure: {e}", target.address)
                )

        stdout = result.stdout
        if stdout is None:
            output = ""
        elif isinstance(stdout, bytes):
            output = stdout.decode("utf-8", errors="replace")
        else:
            output = stdout

        logger.debug(
            "SSH command on %s exited with %s (%d bytes)",
            target.address,
            result.exit_status,
            len(output),
        )
        return CommandResult(stdout=output, exit_code=result.exit_status)
