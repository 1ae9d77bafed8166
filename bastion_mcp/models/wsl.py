"""WSL bootstrap data models."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class WSLState(str, Enum):
    """Bootstrap state of a Windows target's Linux subsystem."""

    NOT_INSTALLED = "not_installed"
    REBOOT_PENDING = "reboot_pending"
    KERNEL_MISSING = "kernel_missing"
    DISTRIBUTION_MISSING = "distribution_missing"
    DISTRIBUTION_NOT_READY = "distribution_not_ready"
    READY = "ready"


@dataclass
class WSLReadinessReport:
    """Snapshot of a target's WSL readiness.

    Computed fresh on every readiness check and never persisted.
    """

    feature_enabled: bool = False
    vm_platform_enabled: bool = False
    kernel_installed: bool = False
    distribution_installed: bool = False
    distribution_ready: bool = False
    reboot_pending: bool = False
    message: str = ""
    distribution: str | None = None

    @property
    def state(self) -> WSLState:
        """Derive the bootstrap state from the probed flags."""
        if self.reboot_pending:
            return WSLState.REBOOT_PENDING
        if not (self.feature_enabled and self.vm_platform_enabled):
            return WSLState.NOT_INSTALLED
        if not self.kernel_installed:
            return WSLState.KERNEL_MISSING
        if not self.distribution_installed:
            return WSLState.DISTRIBUTION_MISSING
        if not self.distribution_ready:
            return WSLState.DISTRIBUTION_NOT_READY
        return WSLState.READY

    @property
    def ready(self) -> bool:
        """Whether the target can run guest commands."""
        return self.state is WSLState.READY

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serialisable dictionary."""
        data = asdict(self)
        data["state"] = self.state.value
        return data


@dataclass
class InstallResult:
    """Outcome of a WSL install run."""

    success: bool
    ready: bool
    needs_reboot: bool
    message: str
    rebooting: bool = False
    state: WSLState | None = None
    reboot_attempts: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serialisable dictionary."""
        data = asdict(self)
        data["state"] = self.state.value if self.state is not None else None
        return data
