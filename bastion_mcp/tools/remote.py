"""MCP tools for remote command execution and WSL bootstrap."""

import logging
from typing import Any

from bastion_mcp.models import OSClass, Target
from bastion_mcp.services import BastionError, get_dependencies
from bastion_mcp.utils.validation import validate_host

logger = logging.getLogger(__name__)


def _error_payload(error: BastionError) -> dict[str, Any]:
    """Describe a failure for a tool response."""
    return {
        "error": str(error),
        "error_type": type(error).__name__,
        "retryable": error.retryable,
    }


async def run_command(
    address: str,
    user: str,
    secret: str,
    command: str,
    os_hint: str | None = None,
) -> dict[str, Any]:
    """Run a shell command on a Linux host, or inside WSL on a Windows host.

    Args:
        address: Host name or IP address of the target.
        user: Login user name.
        secret: Login password.
        command: Shell command to run.
        os_hint: Optional "linux" or "windows" to skip OS detection.

    Returns:
        {"output": combined stdout/stderr, "error": transport error or null}
    """
    deps = get_dependencies()
    target = Target.from_parts(validate_host(address), user, secret)
    try:
        result = await deps.router.run_command(target, command, os_class=OSClass.parse(os_hint))
    except BastionError as e:
        return {"output": "", **_error_payload(e)}

    payload = result.to_output()
    if result.transport_error is not None:
        payload.update(_error_payload(result.transport_error))
    return payload


async def classify_os(address: str) -> dict[str, Any]:
    """Detect whether a host runs Linux or Windows without logging in.

    Args:
        address: Host name or IP address of the target.

    Returns:
        {"address": ..., "os": "linux" | "windows" | "unknown"}
    """
    deps = get_dependencies()
    verdict = await deps.router.classify(validate_host(address))
    return {"address": address, "os": verdict.value}


async def wsl_readiness(
    address: str,
    user: str,
    secret: str,
    distro: str | None = None,
) -> dict[str, Any]:
    """Report WSL readiness of a Windows host without changing it.

    Args:
        address: Host name or IP address of the Windows target.
        user: Windows user with administrative rights.
        secret: Password for that user.
        distro: WSL distribution to check (default: configured distribution).

    Returns:
        Readiness flags, derived state and a human-readable message.
    """
    deps = get_dependencies()
    target = Target.from_parts(validate_host(address), user, secret)
    try:
        report = await deps.bootstrapper.assess_readiness(target, distro)
    except BastionError as e:
        return _error_payload(e)
    return report.to_dict()


async def install_wsl(
    address: str,
    user: str,
    secret: str,
    distro: str | None = None,
    auto_reboot: bool = False,
    wait_for_reboot: bool = False,
) -> dict[str, Any]:
    """Install WSL and a Linux distribution on a Windows host.

    Args:
        address: Host name or IP address of the Windows target.
        user: Windows user with administrative rights.
        secret: Password for that user.
        distro: WSL distribution to install (default: configured distribution).
        auto_reboot: Reboot the host when Windows features need activation.
        wait_for_reboot: Wait for the host to return and continue installing.

    Returns:
        success, ready, needs_reboot, rebooting, state and message.
    """
    deps = get_dependencies()
    target = Target.from_parts(validate_host(address), user, secret)
    try:
        result = await deps.bootstrapper.install(
            target,
            distro,
            auto_reboot=auto_reboot,
            wait_for_reboot=wait_for_reboot,
        )
    except BastionError as e:
        return {"success": False, "ready": False, "needs_reboot": False, **_error_payload(e)}
    return result.to_dict()
