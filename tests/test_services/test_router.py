"""Tests for the command router."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bastion_mcp.models import CommandResult, OSClass, Target
from bastion_mcp.services.errors import (
    DistributionMissing,
    OSUndetermined,
    TransportUnavailable,
    Unreachable,
)
from bastion_mcp.services.router import CommandRouter


@pytest.fixture
def ssh() -> MagicMock:
    """Mock SSH transport."""
    transport = MagicMock()
    transport.port = 22
    transport.exec = AsyncMock(return_value=CommandResult(stdout="Linux\n", exit_code=0))
    return transport


@pytest.fixture
def winrm() -> MagicMock:
    """Mock WinRM transport."""
    transport = MagicMock()
    transport.port = 5985
    transport.exec_in_guest = AsyncMock(
        return_value=CommandResult(stdout="Linux wsl\n", exit_code=0)
    )
    return transport


@pytest.fixture
def router(ssh: MagicMock, winrm: MagicMock) -> CommandRouter:
    """Router wired to mock transports."""
    return CommandRouter(ssh=ssh, winrm=winrm, default_distro="Ubuntu")


@pytest.fixture
def target() -> Target:
    """A sample target."""
    return Target.from_parts("10.0.0.5", "root", "pw")


@pytest.fixture(autouse=True)
def tooling_installed():
    """Pretend both client libraries are installed."""
    with patch("bastion_mcp.services.router.ssh_client_available", return_value=True), patch(
        "bastion_mcp.services.router.winrm_client_available", return_value=True
    ):
        yield


@pytest.mark.asyncio
async def test_linux_target_uses_ssh(
    router: CommandRouter, ssh: MagicMock, winrm: MagicMock, target: Target
) -> None:
    """A target with SSH open runs its command over SSH."""
    with patch.object(router, "classify", AsyncMock(return_value=OSClass.LINUX)):
        result = await router.run_command(target, "uname -s")

    assert result.to_output() == {"output": "Linux", "error": None}
    ssh.exec.assert_awaited_once_with(target, "uname -s")
    winrm.exec_in_guest.assert_not_awaited()


@pytest.mark.asyncio
async def test_windows_target_runs_in_wsl_guest(
    router: CommandRouter, ssh: MagicMock, winrm: MagicMock
) -> None:
    """A Windows target runs its command inside the default distribution."""
    target = Target.from_parts("10.0.0.7", "Administrator", "pw")

    with patch.object(router, "classify", AsyncMock(return_value=OSClass.WINDOWS)):
        result = await router.run_command(target, "uname -s")

    assert result.succeeded
    winrm.exec_in_guest.assert_awaited_once_with(target, "uname -s", "Ubuntu")
    ssh.exec.assert_not_awaited()


@pytest.mark.asyncio
async def test_known_os_skips_fingerprinting(
    router: CommandRouter, ssh: MagicMock, target: Target
) -> None:
    """A caller-supplied OS class is used as is."""
    classify = AsyncMock()
    with patch.object(router, "classify", classify):
        await router.run_command(target, "id", os_class=OSClass.LINUX)

    classify.assert_not_awaited()
    ssh.exec.assert_awaited_once()


@pytest.mark.asyncio
async def test_unknown_os_falls_back_to_ssh(
    router: CommandRouter, ssh: MagicMock, target: Target
) -> None:
    """Inconclusive fingerprints try SSH when the fallback is enabled."""
    ssh.exec.return_value = CommandResult.failed(Unreachable("SSH unreachable", "10.0.0.5"))

    with patch.object(router, "classify", AsyncMock(return_value=OSClass.UNKNOWN)):
        result = await router.run_command(target, "id")

    ssh.exec.assert_awaited_once()
    assert isinstance(result.transport_error, Unreachable)


@pytest.mark.asyncio
async def test_unknown_os_without_fallback_raises(
    ssh: MagicMock, winrm: MagicMock, target: Target
) -> None:
    """Inconclusive fingerprints fail when no fallback is configured."""
    router = CommandRouter(ssh=ssh, winrm=winrm, unknown_os_fallback=None)

    with patch.object(router, "classify", AsyncMock(return_value=OSClass.UNKNOWN)):
        with pytest.raises(OSUndetermined):
            await router.run_command(target, "id")

    ssh.exec.assert_not_awaited()


@pytest.mark.asyncio
async def test_no_client_tooling_raises(router: CommandRouter, target: Target) -> None:
    """Without any client library the router refuses to run."""
    with patch("bastion_mcp.services.router.ssh_client_available", return_value=False), patch(
        "bastion_mcp.services.router.winrm_client_available", return_value=False
    ):
        with pytest.raises(TransportUnavailable):
            await router.run_command(target, "id")


@pytest.mark.asyncio
async def test_guest_errors_are_returned_not_raised(
    router: CommandRouter, winrm: MagicMock
) -> None:
    """Missing distributions come back as a transport error in the result."""
    error = DistributionMissing("Ubuntu", ["Debian"], "10.0.0.7")
    winrm.exec_in_guest.return_value = CommandResult.failed(error)
    target = Target.from_parts("10.0.0.7", "Administrator", "pw")

    result = await router.run_command(target, "id", os_class=OSClass.WINDOWS)

    assert result.transport_error is error
    assert result.to_output()["output"] == ""


@pytest.mark.asyncio
async def test_invalid_host_rejected(router: CommandRouter) -> None:
    """Addresses with shell metacharacters are rejected before any probe."""
    with pytest.raises(ValueError):
        await router.run_command(Target.from_parts("a;b", "root", "pw"), "id")


@pytest.mark.asyncio
async def test_classify_passes_router_settings(ssh: MagicMock, winrm: MagicMock) -> None:
    """classify() forwards the transports' ports and the probe timeout."""
    router = CommandRouter(ssh=ssh, winrm=winrm, probe_timeout=1.5)

    with patch(
        "bastion_mcp.services.router.classify_os", AsyncMock(return_value=OSClass.LINUX)
    ) as mock_classify:
        assert await router.classify("10.0.0.5") is OSClass.LINUX

    mock_classify.assert_awaited_once_with(
        "10.0.0.5", probe_timeout=1.5, winrm_port=5985, ssh_port=22
    )
