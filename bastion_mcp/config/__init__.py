"""Configuration module for Bastion MCP.

Provides focused classes for different configuration concerns:
- Config: Main configuration class (aggregates all components)
- HostKeyPolicy: SSH host key acceptance
- Settings: Environment variable configuration
"""

from bastion_mcp.config.host_keys import HostKeyPolicy
from bastion_mcp.config.main import Config
from bastion_mcp.config.settings import Settings

__all__ = ["Config", "HostKeyPolicy", "Settings"]
