"""Error taxonomy for remote execution and WSL bootstrap.

Every error carries a human-readable message and a hint telling the operator
whether to retry later or stop and fix the target manually.
"""

RETRY_LATER = "retry later"
FIX_MANUALLY = "stop and fix manually"


class BastionError(Exception):
    """Base class for remote execution failures."""

    retryable: bool = True

    def __init__(self, message: str, address: str | None = None) -> None:
        """Initialize error.

        Args:
            message: Human-readable description of the failure
            address: Target address the failure relates to, if any
        """
        self.message = message
        self.address = address
        super().__init__(message)

    @property
    def hint(self) -> str:
        """Operator guidance derived from retryability."""
        return RETRY_LATER if self.retryable else FIX_MANUALLY

    def __str__(self) -> str:
        prefix = f"{self.address}: " if self.address else ""
        return f"{prefix}{self.message} ({self.hint})"


class Unreachable(BastionError):
    """No network signal from the target."""


class OSUndetermined(BastionError):
    """OS fingerprinting was inconclusive and no fallback is configured."""


class TransportUnavailable(BastionError):
    """No SSH or WinRM client library is installed on the calling host."""

    retryable = False


class TransportAuthFailure(BastionError):
    """Credentials rejected by SSH or WinRM."""

    retryable = False


class TransportFailure(BastionError):
    """The transport channel failed after connecting (timeout, protocol error)."""


class WSLNotReady(BastionError):
    """The WSL runtime does not answer a status query."""


class DistributionMissing(BastionError):
    """The requested Linux distribution is not installed."""

    def __init__(
        self,
        requested: str,
        installed: list[str],
        address: str | None = None,
    ) -> None:
        """Initialize error.

        Args:
            requested: Distribution name the caller asked for
            installed: Distribution names found on the target
            address: Target address
        """
        self.requested = requested
        self.installed = installed
        listing = ", ".join(installed) if installed else "none"
        super().__init__(
            f"WSL distribution {requested!r} is not installed (installed: {listing})",
            address,
        )


class DistributionNotReady(BastionError):
    """The distribution is installed but fails its liveness probe."""


class RebootBudgetExhausted(BastionError):
    """The reboot bound for a target has been reached."""

    retryable = False


class TimeoutWaitingForHost(BastionError):
    """The target did not come back online within the bounded wait."""

    retryable = False
