"""Global state management for Bastion MCP."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bastion_mcp.dependencies import Dependencies

# Global state (initialized on first access)
_deps: "Dependencies | None" = None


def get_dependencies() -> "Dependencies":
    """Get or create the process-wide dependencies container."""
    global _deps
    if _deps is None:
        from bastion_mcp.dependencies import Dependencies

        _deps = Dependencies.create()
    return _deps


def set_dependencies(deps: "Dependencies") -> None:
    """Set the global dependencies instance.

    Allows tests and the server lifespan to inject a container.

    Args:
        deps: Dependencies instance to use globally.
    """
    global _deps
    _deps = deps


def reset_state() -> None:
    """Reset global state for testing.

    Drops the container, and with it the reboot counter, so tests start
    with fresh state. Should only be used in test fixtures.
    """
    global _deps
    _deps = None
