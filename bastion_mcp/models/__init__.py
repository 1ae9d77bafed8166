"""Data models for Bastion MCP."""

from bastion_mcp.models.command import CommandResult
from bastion_mcp.models.os_class import OSClass
from bastion_mcp.models.target import Credentials, Target
from bastion_mcp.models.wsl import InstallResult, WSLReadinessReport, WSLState

__all__ = [
    "CommandResult",
    "Credentials",
    "InstallResult",
    "OSClass",
    "Target",
    "WSLReadinessReport",
    "WSLState",
]
