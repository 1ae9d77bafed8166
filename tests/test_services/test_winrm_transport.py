"""Tests for WinRM execution and the WSL guest proxy."""

import base64
import time
from collections.abc import Callable
from unittest.mock import patch

import pytest
import requests
from winrm.exceptions import InvalidCredentialsError

from bastion_mcp.models import Target
from bastion_mcp.services.errors import (
    DistributionMissing,
    TransportAuthFailure,
    TransportFailure,
    Unreachable,
    WSLNotReady,
)
from bastion_mcp.services.winrm_transport import (
    WinRMTransport,
    clean_clixml,
    normalize_distro_name,
    parse_distribution_list,
    resolve_distribution,
)


def _wide(text: str) -> bytes:
    """Encode text the way wsl.exe writes it to a redirected console."""
    return text.encode("utf-16-le")


class FakeProtocol:
    """Stand-in for winrm.protocol.Protocol driven by a script handler.

    The handler receives the decoded PowerShell script and returns
    (stdout, stderr, status).
    """

    def __init__(self, handler: Callable[[str], tuple[bytes, bytes, int]]) -> None:
        self.handler = handler
        self.scripts: list[str] = []
        self.opened = 0
        self.closed = 0
        self.open_error: Exception | None = None
        self._pending: dict[str, str] = {}

    def open_shell(self, codepage: int = 437) -> str:
        if self.open_error is not None:
            raise self.open_error
        self.opened += 1
        return "shell-1"

    def run_command(self, shell_id: str, command: str, args: list[str]) -> str:
        script = base64.b64decode(args[-1]).decode("utf-16-le")
        self.scripts.append(script)
        command_id = f"cmd-{len(self.scripts)}"
        self._pending[command_id] = script
        return command_id

    def get_command_output(self, shell_id: str, command_id: str) -> tuple[bytes, bytes, int]:
        return self.handler(self._pending[command_id])

    def cleanup_command(self, shell_id: str, command_id: str) -> None:
        self._pending.pop(command_id, None)

    def close_shell(self, shell_id: str) -> None:
        self.closed += 1


def wsl_host(
    installed: list[str],
    running: list[str] | None = None,
    wsl_status: int = 0,
    guest_output: str = "Linux\n",
) -> Callable[[str], tuple[bytes, bytes, int]]:
    """Script handler simulating a Windows host with WSL."""
    running = running or []

    def handler(script: str) -> tuple[bytes, bytes, int]:
        if "--status" in script:
            return (_wide("Default Version: 2\r\n"), b"", wsl_status)
        if "--list --running" in script:
            if not running:
                return (_wide("There are no running distributions.\r\n"), b"", 1)
            return (_wide("\r\n".join(running) + "\r\n"), b"", 0)
        if "--list --quiet" in script:
            return (_wide("\r\n".join(installed) + "\r\n"), b"", 0)
        if "--exec true" in script:
            return (b"", b"", 0)
        if "base64 -d" in script:
            return (guest_output.encode(), b"", 0)
        return (b"", b"", 0)

    return handler


@pytest.fixture
def target() -> Target:
    """A Windows target."""
    return Target.from_parts("10.0.0.7", "Administrator", "pw")


@pytest.fixture
def transport() -> WinRMTransport:
    """WinRM transport with default settings."""
    return WinRMTransport()


def _use(protocol: FakeProtocol):
    """Patch the transport to hand out the fake protocol."""
    return patch.object(WinRMTransport, "_protocol", return_value=protocol)


class TestDistributionNames:
    """Tests for distribution name handling."""

    def test_prefix_match(self) -> None:
        """A bare name resolves to the first installed versioned variant."""
        assert resolve_distribution("Ubuntu", ["Ubuntu-22.04", "Debian"]) == "Ubuntu-22.04"

    def test_exact_match_wins(self) -> None:
        """An exact match beats an earlier prefix match."""
        assert resolve_distribution("Ubuntu", ["Ubuntu-22.04", "Ubuntu"]) == "Ubuntu"

    def test_case_and_separator_insensitive(self) -> None:
        """Case, underscores and spaces do not matter."""
        assert resolve_distribution("ubuntu_22.04", ["Ubuntu-22.04"]) == "Ubuntu-22.04"

    def test_no_match(self) -> None:
        """Nothing matching yields None."""
        assert resolve_distribution("Fedora", ["Ubuntu-22.04", "Debian"]) is None
        assert resolve_distribution("", ["Ubuntu"]) is None

    def test_normalize_strips_nuls_and_default_marker(self) -> None:
        """NUL padding and the (Default) marker are removed."""
        assert normalize_distro_name("U\x00b\x00u\x00n\x00t\x00u\x00 (Default)") == "ubuntu"

    def test_parse_list_cleans_wide_output(self) -> None:
        """wsl.exe list output decoded as UTF-8 still parses."""
        raw = "U\x00b\x00u\x00n\x00t\x00u\x00\r\x00\n\x00\r\x00\n\x00D\x00e\x00b\x00i\x00a\x00n\x00"
        assert parse_distribution_list(raw) == ["Ubuntu", "Debian"]


def test_clean_clixml_extracts_error_text() -> None:
    """CLIXML stderr is reduced to its error strings."""
    stderr = (
        '#< CLIXML\r\n<Objs Version="1.1.0.1" '
        'xmlns="http://schemas.microsoft.com/powershell/2004/04">'
        '<S S="Error">Access is denied_x000D__x000A_</S></Objs>'
    )
    assert clean_clixml(stderr) == "Access is denied\r\n"


def test_clean_clixml_passes_plain_text() -> None:
    """Plain stderr is returned unchanged."""
    assert clean_clixml("plain") == "plain"


@pytest.mark.asyncio
async def test_exec_in_guest_resolves_and_runs(transport: WinRMTransport, target: Target) -> None:
    """Commands run as root inside the resolved distribution."""
    protocol = FakeProtocol(wsl_host(["Ubuntu-22.04", "Debian"], running=["Ubuntu-22.04"]))

    with _use(protocol):
        result = await transport.exec_in_guest(target, "uname -s", "Ubuntu")

    assert result.to_output() == {"output": "Linux", "error": None}
    guest_script = protocol.scripts[-1]
    assert "-d 'Ubuntu-22.04' -u root --exec bash" in guest_script
    assert base64.b64encode(b"uname -s").decode() in guest_script
    assert protocol.opened == protocol.closed == 1


@pytest.mark.asyncio
async def test_exec_in_guest_starts_stopped_distribution(
    transport: WinRMTransport, target: Target
) -> None:
    """A stopped distribution is started before the command runs."""
    protocol = FakeProtocol(wsl_host(["Ubuntu"], running=[]))

    with _use(protocol):
        result = await transport.exec_in_guest(target, "id", "Ubuntu")

    assert result.succeeded
    assert any("--exec true" in script for script in protocol.scripts)


@pytest.mark.asyncio
async def test_exec_in_guest_missing_distribution(
    transport: WinRMTransport, target: Target
) -> None:
    """An unmatched distribution reports what is installed."""
    protocol = FakeProtocol(wsl_host(["Ubuntu-22.04", "Debian"]))

    with _use(protocol):
        result = await transport.exec_in_guest(target, "id", "Fedora")

    error = result.transport_error
    assert isinstance(error, DistributionMissing)
    assert error.installed == ["Ubuntu-22.04", "Debian"]
    assert not any("base64 -d" in script for script in protocol.scripts)
    assert protocol.closed == 1


@pytest.mark.asyncio
async def test_exec_in_guest_wsl_not_responding(
    transport: WinRMTransport, target: Target
) -> None:
    """A failing status query reports WSLNotReady."""
    protocol = FakeProtocol(wsl_host(["Ubuntu"], wsl_status=1))

    with _use(protocol):
        result = await transport.exec_in_guest(target, "id", "Ubuntu")

    assert isinstance(result.transport_error, WSLNotReady)
    assert protocol.closed == 1


@pytest.mark.asyncio
async def test_exec_in_guest_rejects_unsafe_distro(
    transport: WinRMTransport, target: Target
) -> None:
    """Unsafe distribution names never reach the target."""
    with pytest.raises(ValueError):
        await transport.exec_in_guest(target, "id", "Ubuntu; shutdown")


@pytest.mark.asyncio
async def test_exec_runs_powershell(transport: WinRMTransport, target: Target) -> None:
    """Native exec runs the script as given and merges stderr."""
    protocol = FakeProtocol(lambda script: (b"out\r\n", b"warn\r\n", 0))

    with _use(protocol):
        result = await transport.exec(target, "Get-Date")

    assert protocol.scripts == ["Get-Date"]
    assert result.stdout == "out\n\nwarn\n"
    assert result.exit_code == 0


@pytest.mark.asyncio
async def test_invalid_credentials(transport: WinRMTransport, target: Target) -> None:
    """Rejected credentials map to TransportAuthFailure."""
    protocol = FakeProtocol(wsl_host([]))
    protocol.open_error = InvalidCredentialsError("the specified credentials were rejected")

    with _use(protocol):
        result = await transport.exec(target, "Get-Date")

    assert isinstance(result.transport_error, TransportAuthFailure)
    assert protocol.closed == 0


@pytest.mark.asyncio
async def test_connection_error_is_unreachable(transport: WinRMTransport, target: Target) -> None:
    """Connection errors map to Unreachable."""
    protocol = FakeProtocol(wsl_host([]))
    protocol.open_error = requests.exceptions.ConnectionError("refused")

    with _use(protocol):
        result = await transport.exec(target, "Get-Date")

    assert isinstance(result.transport_error, Unreachable)


@pytest.mark.asyncio
async def test_shell_closed_when_command_fails(transport: WinRMTransport, target: Target) -> None:
    """The remote shell is closed even when a command raises mid-session."""

    def handler(script: str) -> tuple[bytes, bytes, int]:
        raise requests.exceptions.ReadTimeout("read timed out")

    protocol = FakeProtocol(handler)

    with _use(protocol):
        result = await transport.exec(target, "Get-Date")

    assert isinstance(result.transport_error, TransportFailure)
    assert protocol.opened == protocol.closed == 1


@pytest.mark.asyncio
async def test_run_in_session_timeout(target: Target) -> None:
    """Calls exceeding the overall bound raise TransportFailure."""

    def slow(script: str) -> tuple[bytes, bytes, int]:
        time.sleep(0.5)
        return (b"", b"", 0)

    transport = WinRMTransport()
    protocol = FakeProtocol(slow)

    with _use(protocol):
        with pytest.raises(TransportFailure, match="timed out"):
            await transport.run_in_session(target, lambda s: s.run_ps("x"), timeout=0.05)
