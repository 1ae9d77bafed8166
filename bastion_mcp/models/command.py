"""Command execution data models."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from bastion_mcp.utils.output import judge_output

if TYPE_CHECKING:
    from bastion_mcp.services.errors import BastionError


@dataclass
class CommandResult:
    """Result of a remote command execution.

    ``transport_error`` means the channel itself failed (auth, timeout,
    unreachable). A non-zero ``exit_code`` means the remote shell ran and
    reported failure. ``exit_code`` is None when the transport did not
    surface one.
    """

    stdout: str = ""
    exit_code: int | None = None
    transport_error: "BastionError | None" = None

    @classmethod
    def failed(cls, error: "BastionError") -> "CommandResult":
        """Build a result for a transport-level failure."""
        return cls(stdout="", exit_code=None, transport_error=error)

    @property
    def succeeded(self) -> bool:
        """Whether the command ran and reported success."""
        if self.transport_error is not None:
            return False
        return judge_output(self.stdout, self.exit_code)

    @property
    def error(self) -> str | None:
        """Human-readable transport error, if any."""
        return str(self.transport_error) if self.transport_error is not None else None

    def to_output(self) -> dict[str, Any]:
        """Collaborator-facing shape: combined output plus transport error."""
        return {"output": self.stdout.strip(), "error": self.error}
