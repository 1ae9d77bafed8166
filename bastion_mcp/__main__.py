"""Entry point for bastion_mcp server."""

import logging

from bastion_mcp.config import Settings
from bastion_mcp.server import mcp  # Importing the server also configures logging

logger = logging.getLogger(__name__)


def run_server() -> None:
    """Run the MCP server with configured transport."""
    settings = Settings.from_env()
    logger.info("Logging configured: level=%s, transport=%s", settings.log_level, settings.transport)

    if settings.transport == "stdio":
        logger.info("Starting Bastion MCP server (transport=stdio)")
        mcp.run(transport="stdio")
    else:
        logger.info(
            "Starting Bastion MCP server (transport=http, host=%s, port=%d)",
            settings.http_host,
            settings.http_port,
        )
        mcp.run(
            transport="http",
            host=settings.http_host,
            port=settings.http_port,
        )


if __name__ == "__main__":
    run_server()
