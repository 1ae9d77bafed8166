"""Bastion MCP FastMCP server.

This is a thin wrapper that wires together the MCP server with tools.
All business logic is delegated to the tools/ and services/ modules.
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from bastion_mcp.config import Settings
from bastion_mcp.dependencies import Dependencies
from bastion_mcp.middleware import ErrorHandlingMiddleware, LoggingMiddleware
from bastion_mcp.services import set_dependencies
from bastion_mcp.tools import classify_os, install_wsl, run_command, wsl_readiness
from bastion_mcp.utils.console import MCPRequestFormatter

NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "asyncssh",
    "winrm",
    "requests_ntlm",
    "urllib3",
    "fastmcp",
    "starlette",
    "anyio",
)


def _configure_logging(settings: Settings | None = None) -> None:
    """Configure colorful logging for the bastion_mcp package.

    Called at module load time so logging is configured before any loggers
    are used, regardless of how the server is started.

    Args:
        settings: Settings to read; loaded from the environment by default.
    """
    settings = settings or Settings.from_env()
    use_colors = settings.log_colors and sys.stderr.isatty()

    bastion_logger = logging.getLogger("bastion_mcp")
    bastion_logger.setLevel(getattr(logging, settings.log_level, logging.INFO))

    if not bastion_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(MCPRequestFormatter(use_colors=use_colors))
        bastion_logger.addHandler(handler)
        bastion_logger.propagate = False

    for name in NOISY_LOGGERS:
        lg = logging.getLogger(name)
        lg.setLevel(logging.WARNING)
        lg.handlers = []
        lg.propagate = False

    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(logging.WARNING)


_configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Build the dependency container for the server's lifetime.

    Args:
        server: The FastMCP server instance

    Yields:
        Dict with the effective reboot budget and default distribution
    """
    logger.info("Bastion MCP server starting up")

    deps = Dependencies.create()
    set_dependencies(deps)
    settings = deps.config.settings

    if deps.config.known_hosts_path is None:
        logger.warning("No BASTION_KNOWN_HOSTS set; SSH host keys are trusted on first use")
    logger.info(
        "Reboot budget: %d per target; default WSL distribution: %s",
        settings.max_reboots,
        settings.default_distro,
    )
    logger.info("Bastion MCP server ready to accept connections")

    try:
        yield {
            "max_reboots": settings.max_reboots,
            "default_distro": settings.default_distro,
        }
    finally:
        snapshot = deps.counter.snapshot()
        if snapshot:
            logger.info(
                "Reboots issued this run: %s",
                ", ".join(f"{host}={count}" for host, count in sorted(snapshot.items())),
            )
        logger.info("Bastion MCP server shutdown complete")


def configure_middleware(server: FastMCP, settings: Settings | None = None) -> None:
    """Configure middleware stack for the server.

    Adds middleware in order: ErrorHandling -> Logging (with integrated timing)

    Args:
        server: The FastMCP server to configure.
        settings: Settings to read; loaded from the environment by default.
    """
    settings = settings or Settings.from_env()

    # First added = innermost
    server.add_middleware(ErrorHandlingMiddleware(include_traceback=settings.include_traceback))
    server.add_middleware(
        LoggingMiddleware(
            include_payloads=settings.log_payloads,
            slow_threshold_ms=settings.slow_threshold_ms,
        )
    )


def create_server() -> FastMCP:
    """Create and configure the MCP server with all middleware and tools.

    Returns:
        Configured FastMCP server instance
    """
    server = FastMCP(
        "bastion_mcp",
        lifespan=app_lifespan,
    )

    configure_middleware(server)

    server.tool()(run_command)
    server.tool()(classify_os)
    server.tool()(wsl_readiness)
    server.tool()(install_wsl)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> PlainTextResponse:
        """Health check endpoint."""
        client_host = request.client.host if request.client else "unknown"
        logger.debug("Health check from %s", client_host)
        return PlainTextResponse("OK")

    return server


# Default server instance
mcp = create_server()
