"""Shared base for Bastion MCP middleware."""

import logging

from fastmcp.server.middleware import Middleware


class BastionMiddleware(Middleware):
    """FastMCP middleware that logs through an injectable logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        """Initialize middleware.

        Args:
            logger: Logger to use; tests pass a mock. Defaults to this module's logger.
        """
        self.logger = logger or logging.getLogger(__name__)
