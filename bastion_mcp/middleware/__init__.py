"""Bastion MCP middleware components."""

from bastion_mcp.middleware.base import BastionMiddleware
from bastion_mcp.middleware.errors import ErrorHandlingMiddleware
from bastion_mcp.middleware.logging import LoggingMiddleware

__all__ = [
    "BastionMiddleware",
    "ErrorHandlingMiddleware",
    "LoggingMiddleware",
]
