"""MCP tools for Bastion MCP."""

from bastion_mcp.tools.remote import classify_os, install_wsl, run_command, wsl_readiness

__all__ = ["classify_os", "install_wsl", "run_command", "wsl_readiness"]
