"""Services for Bastion MCP."""

from bastion_mcp.services.errors import (
    BastionError,
    DistributionMissing,
    DistributionNotReady,
    OSUndetermined,
    RebootBudgetExhausted,
    TimeoutWaitingForHost,
    TransportAuthFailure,
    TransportFailure,
    TransportUnavailable,
    Unreachable,
    WSLNotReady,
)
from bastion_mcp.services.fingerprint import classify_os, classify_ttl
from bastion_mcp.services.reboot_budget import RebootAttemptCounter
from bastion_mcp.services.router import CommandRouter
from bastion_mcp.services.ssh_transport import SSHTransport
from bastion_mcp.services.state import get_dependencies, reset_state, set_dependencies
from bastion_mcp.services.winrm_transport import (
    WinRMSession,
    WinRMTransport,
    resolve_distribution,
)
from bastion_mcp.services.wsl_bootstrap import WSLBootstrapper

__all__ = [
    "BastionError",
    "classify_os",
    "classify_ttl",
    "CommandRouter",
    "DistributionMissing",
    "DistributionNotReady",
    "get_dependencies",
    "OSUndetermined",
    "RebootAttemptCounter",
    "RebootBudgetExhausted",
    "reset_state",
    "resolve_distribution",
    "set_dependencies",
    "SSHTransport",
    "TimeoutWaitingForHost",
    "TransportAuthFailure",
    "TransportFailure",
    "TransportUnavailable",
    "Unreachable",
    "WinRMSession",
    "WinRMTransport",
    "WSLBootstrapper",
    "WSLNotReady",
]
