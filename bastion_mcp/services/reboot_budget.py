"""Per-target reboot accounting for the WSL bootstrap.

Counts are keyed by target address and live for the lifetime of the process.
The only mutation is a monotonic increment per reboot issued, so once a
target's budget is spent no further reboot is ever granted for it.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class RebootAttemptCounter:
    """Thread-safe map of target address to reboots issued."""

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(address: str) -> str:
        return address.strip().lower()

    def get(self, address: str) -> int:
        """Return the number of reboots issued for a target."""
        with self._lock:
            return self._counts.get(self._key(address), 0)

    def try_consume(self, address: str, maximum: int) -> int | None:
        """Reserve one reboot for a target if its budget allows.

        Check and increment happen under one lock acquisition, so concurrent
        flows for the same address can never overspend the budget.

        Args:
            address: Target address
            maximum: Maximum reboots allowed for the target

        Returns:
            The attempt number just reserved (1-based), or None if exhausted
        """
        key = self._key(address)
        with self._lock:
            used = self._counts.get(key, 0)
            if used >= maximum:
                return None
            self._counts[key] = used + 1
            return used + 1

    def reset(self) -> None:
        """Forget all counts. Intended for tests."""
        with self._lock:
            self._counts.clear()

    def snapshot(self) -> dict[str, int]:
        """Return a copy of all counts."""
        with self._lock:
            return dict(self._counts)
