"""WinRM command execution, including proxying into a WSL guest.

Each call opens one remote shell (NTLM with message encryption) and closes it
on every exit path. pywinrm is blocking, so calls run in worker threads and
are bounded by an overall timeout on the asyncio side.
"""

import asyncio
import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from bastion_mcp.models import CommandResult
from bastion_mcp.services import powershell
from bastion_mcp.services.errors import (
    BastionError,
    DistributionMissing,
    TransportAuthFailure,
    TransportFailure,
    TransportUnavailable,
    Unreachable,
    WSLNotReady,
)
from bastion_mcp.services.tooling import winrm_client_available
from bastion_mcp.utils.output import clean_wide_output
from bastion_mcp.utils.shell import encode_ps
from bastion_mcp.utils.validation import validate_distro

if TYPE_CHECKING:
    from bastion_mcp.models import Target

logger = logging.getLogger(__name__)

T = TypeVar("T")

UTF8_CODEPAGE = 65001
_CLIXML_HEADER = "#< CLIXML"
_CLIXML_ESCAPE = re.compile(r"_x([0-9A-Fa-f]{4})_")


def normalize_distro_name(name: str) -> str:
    """Normalize a distribution name for comparison.

    Strips NULs and whitespace, a trailing "(Default)" marker, casefolds, and
    treats underscores and spaces as dashes.
    """
    name = clean_wide_output(name).strip()
    name = re.sub(r"\s*\(default\)$", "", name, flags=re.IGNORECASE)
    return re.sub(r"[\s_]+", "-", name.casefold())


def resolve_distribution(requested: str, installed: list[str]) -> str | None:
    """Resolve a requested distribution against the installed list.

    Exact match on normalized names wins; otherwise the first installed
    distribution whose normalized name starts with the request, so
    "Ubuntu" resolves to "Ubuntu-22.04".

    Args:
        requested: Distribution name asked for by the caller
        installed: Installed distribution names, in wsl.exe list order

    Returns:
        The installed name to use, or None if nothing matches
    """
    wanted = normalize_distro_name(requested)
    if not wanted:
        return None

    normalized = [(normalize_distro_name(name), name) for name in installed]
    for norm, name in normalized:
        if norm == wanted:
            return name
    for norm, name in normalized:
        if norm.startswith(wanted):
            return name
    return None


def parse_distribution_list(output: str) -> list[str]:
    """Parse ``wsl.exe --list --quiet`` output into distribution names."""
    names = []
    for line in clean_wide_output(output).splitlines():
        name = re.sub(r"\s*\(default\)$", "", line.strip(), flags=re.IGNORECASE)
        if name:
            names.append(name)
    return names


def clean_clixml(stderr: str) -> str:
    """Extract error text from a PowerShell CLIXML stderr stream."""
    if not stderr.startswith(_CLIXML_HEADER):
        return stderr

    body = stderr[len(_CLIXML_HEADER) :].strip()
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        return stderr

    lines = []
    for element in root.iter():
        if element.tag.endswith("}S") and element.get("S") == "Error" and element.text:
            text = _CLIXML_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), element.text)
            lines.append(text)
    return "".join(lines)


@contextmanager
def _translate_errors(address: str) -> Iterator[None]:
    """Map pywinrm and requests exceptions onto the transport taxonomy."""
    import requests
    from winrm.exceptions import InvalidCredentialsError, WinRMError, WinRMTransportError

    try:
        yield
    except InvalidCredentialsError as e:
        raise TransportAuthFailure(f"WinRM authentication failed: {e}", address) from e
    except (requests.exceptions.ConnectionError, requests.exceptions.ConnectTimeout) as e:
        raise Unreachable(f"WinRM unreachable: {e}", address) from e
    except requests.exceptions.RequestException as e:
        raise TransportFailure(f"WinRM request failed: {e}", address) from e
    except WinRMTransportError as e:
        if getattr(e, "code", None) == 401:
            raise TransportAuthFailure(f"WinRM authentication failed: {e}", address) from e
        raise TransportFailure(f"WinRM transport error: {e}", address) from e
    except WinRMError as e:
        raise TransportFailure(f"WinRM error: {e}", address) from e


class WinRMSession:
    """An open remote shell on a Windows target."""

    def __init__(self, protocol: Any, shell_id: str, address: str) -> None:
        self.protocol = protocol
        self.shell_id = shell_id
        self.address = address

    def run_ps(self, script: str) -> CommandResult:
        """Run a PowerShell script and capture combined output.

        Raises:
            BastionError: If the channel fails while the script runs
        """
        with _translate_errors(self.address):
            command_id = self.protocol.run_command(
                self.shell_id,
                "powershell.exe",
                [
                    "-NoProfile",
                    "-NonInteractive",
                    "-ExecutionPolicy",
                    "Bypass",
                    "-EncodedCommand",
                    encode_ps(script),
                ],
            )
            try:
                stdout, stderr, status = self.protocol.get_command_output(
                    self.shell_id, command_id
                )
            finally:
                self.protocol.cleanup_command(self.shell_id, command_id)

        output = clean_wide_output(stdout)
        errors = clean_clixml(clean_wide_output(stderr))
        if errors.strip():
            output = f"{output}\n{errors}" if output else errors
        return CommandResult(stdout=output, exit_code=status)

    def wsl_responds(self) -> bool:
        """Whether the WSL runtime answers a status query without error."""
        result = self.run_ps(powershell.WSL_STATUS)
        return result.succeeded

    def list_distributions(self, running: bool = False) -> list[str]:
        """List installed (or only running) distributions."""
        script = powershell.WSL_LIST_RUNNING if running else powershell.WSL_LIST
        result = self.run_ps(script)
        if result.exit_code not in (0, None):
            # wsl.exe exits non-zero when nothing is installed or running
            return []
        return parse_distribution_list(result.stdout)

    def resolve(self, distro: str) -> tuple[str | None, list[str]]:
        """Resolve a distribution name against this target's installed list."""
        installed = self.list_distributions()
        return resolve_distribution(distro, installed), installed

    def ensure_running(self, distro: str) -> None:
        """Start a distribution if it is not already running."""
        running = self.list_distributions(running=True)
        if distro in running:
            return
        logger.info("Starting WSL distribution %s on %s", distro, self.address)
        self.run_ps(powershell.start_distribution(distro))

    def run_in_guest(self, distro: str, command: str) -> CommandResult:
        """Run a bash command as root inside a distribution."""
        return self.run_ps(powershell.run_in_distribution(distro, command))


class WinRMTransport:
    """Runs commands on Windows targets over WinRM."""

    def __init__(
        self,
        port: int = 5985,
        auth_transport: str = "ntlm",
        connect_timeout: float = 15,
        command_timeout: float = 120,
    ) -> None:
        """Initialize WinRM transport.

        Args:
            port: WinRM HTTP listener port
            auth_transport: pywinrm authentication transport (ntlm, kerberos, credssp)
            connect_timeout: Seconds allowed for WinRM operations to respond
            command_timeout: Seconds allowed for a whole call
        """
        self.port = port
        self.auth_transport = auth_transport
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout

    def _protocol(self, target: "Target") -> Any:
        """Build a pywinrm protocol client for the target."""
        if not winrm_client_available():
            raise TransportUnavailable("WinRM client library (pywinrm) is not installed")

        from winrm.protocol import Protocol

        return Protocol(
            endpoint=f"http://{target.address}:{self.port}/wsman",
            transport=self.auth_transport,
            username=target.credentials.user,
            password=target.credentials.secret,
            server_cert_validation="ignore",
            message_encryption="auto",
            operation_timeout_sec=int(self.connect_timeout),
            read_timeout_sec=int(self.connect_timeout) + 10,
        )

    @contextmanager
    def session(self, target: "Target") -> Iterator[WinRMSession]:
        """Open a remote shell and close it on every exit path.

        Raises:
            TransportUnavailable: If pywinrm is not installed
            BastionError: If the shell cannot be opened
        """
        protocol = self._protocol(target)
        logger.info("Opening WinRM session to %s@%s:%d", target.user, target.address, self.port)
        with _translate_errors(target.address):
            shell_id = protocol.open_shell(codepage=UTF8_CODEPAGE)

        try:
            yield WinRMSession(protocol, shell_id, target.address)
        finally:
            try:
                with _translate_errors(target.address):
                    protocol.close_shell(shell_id)
                logger.debug("Closed WinRM session to %s", target.address)
            except BastionError as e:
                logger.warning("Closing WinRM session to %s failed: %s", target.address, e)

    async def run_in_session(
        self,
        target: "Target",
        fn: Callable[[WinRMSession], T],
        timeout: float | None = None,
    ) -> T:
        """Run a blocking function against one session in a worker thread.

        Args:
            target: Windows target
            fn: Called with the open session; its return value is passed through
            timeout: Overall bound in seconds (default: connect + command timeout)

        Raises:
            BastionError: On transport failure or timeout
        """

        def call() -> T:
            with self.session(target) as session:
                return fn(session)

        limit = timeout if timeout is not None else self.connect_timeout + self.command_timeout
        try:
            return await asyncio.wait_for(asyncio.to_thread(call), timeout=limit)
        except TimeoutError:
            raise TransportFailure(
                f"WinRM call timed out after {limit:.0f}s", target.address
            ) from None

    async def exec(self, target: "Target", command: str) -> CommandResult:
        """Execute a PowerShell command natively on the target.

        Raises:
            TransportUnavailable: If pywinrm is not installed
        """
        try:
            return await self.run_in_session(target, lambda s: s.run_ps(command))
        except TransportUnavailable:
            raise
        except BastionError as e:
            logger.warning("WinRM exec on %s failed: %s", target.address, e)
            return CommandResult.failed(e)

    async def exec_in_guest(self, target: "Target", command: str, distro: str) -> CommandResult:
        """Execute a bash command as root inside a WSL distribution.

        Within one session: check the WSL runtime responds, resolve the
        distribution name, start it if needed, then run the command.

        Raises:
            TransportUnavailable: If pywinrm is not installed
        """
        distro = validate_distro(distro)

        def run(session: WinRMSession) -> CommandResult:
            if not session.wsl_responds():
                raise WSLNotReady("WSL runtime does not respond to a status query", target.address)

            resolved, installed = session.resolve(distro)
            if resolved is None:
                raise DistributionMissing(distro, installed, target.address)
            if resolved != distro:
                logger.debug("Resolved WSL distribution %s -> %s", distro, resolved)

            session.ensure_running(resolved)
            return session.run_in_guest(resolved, command)

        try:
            return await self.run_in_session(target, run)
        except TransportUnavailable:
            raise
        except BastionError as e:
            logger.warning("WSL exec on %s failed: %s", target.address, e)
            return CommandResult.failed(e)
