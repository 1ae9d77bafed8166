"""Operating system classification."""

from enum import Enum


class OSClass(str, Enum):
    """Fingerprinter verdict for a target."""

    LINUX = "linux"
    WINDOWS = "windows"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> "OSClass | None":
        """Parse a caller-supplied OS hint.

        Returns:
            Matching OSClass, or None when no hint was given.

        Raises:
            ValueError: If the hint names no known OS class.
        """
        if value is None or not value.strip():
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown OS hint {value!r} (expected one of: {valid})") from None
