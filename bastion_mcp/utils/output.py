"""Output normalization and success judgement for remote commands."""

import logging
import re
from typing import Final

logger = logging.getLogger(__name__)

# Substrings that mark a failed command when no exit code is available
FAILURE_MARKERS: Final[tuple[str, ...]] = (
    "error",
    "fatal",
    "permission denied",
    "access is denied",
    "not recognized as",
    "command not found",
    "no such file or directory",
)

_MARKER_PATTERN = re.compile("|".join(re.escape(m) for m in FAILURE_MARKERS), re.IGNORECASE)


def find_failure_marker(text: str) -> str | None:
    """Return the first failure marker found in text, if any."""
    match = _MARKER_PATTERN.search(text)
    return match.group(0).lower() if match else None


def judge_output(output: str, exit_code: int | None) -> bool:
    """Decide whether a remote command succeeded.

    A surfaced exit code is authoritative. Without one, non-empty output
    containing no failure marker counts as success.

    Args:
        output: Combined stdout/stderr text
        exit_code: Exit code reported by the transport, or None

    Returns:
        True if the command is judged successful
    """
    if exit_code is not None:
        if exit_code == 0 and (marker := find_failure_marker(output)):
            logger.debug("Exit code 0 but output contains %r", marker)
        return exit_code == 0

    if not output.strip():
        return False
    return find_failure_marker(output) is None


def clean_wide_output(text: str | bytes) -> str:
    """Strip artifacts left by UTF-16 console output.

    wsl.exe writes UTF-16LE, which arrives as text interleaved with NUL
    characters when decoded as UTF-8 or the console code page.
    """
    if isinstance(text, bytes):
        if text.startswith(b"\xff\xfe"):
            text = text[2:].decode("utf-16-le", errors="replace")
        else:
            text = text.decode("utf-8", errors="replace")
    return text.replace("\x00", "").replace("\ufeff", "").replace("\r\n", "\n")
