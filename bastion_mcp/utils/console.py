"""Console log formatting for the Bastion MCP server.

Lines look like::

    14:02:11.084 10/19 | WARNING  | wsl_bootstrap           | Rebooting 10.0.0.7 ...

Colors are ANSI escapes and are only emitted when enabled.
"""

import logging
import re
from datetime import datetime

RESET = "\033[0m"
DIM = "\033[2m"

RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
MAGENTA = "\033[95m"
CYAN = "\033[96m"
GREY = "\033[90m"
WHITE = "\033[37m"
ALERT = "\033[41m\033[37m\033[1m"

LEVEL_COLORS = {
    logging.DEBUG: GREY,
    logging.INFO: GREEN,
    logging.WARNING: YELLOW,
    logging.ERROR: RED,
    logging.CRITICAL: ALERT,
}

# Longest matching prefix wins
COMPONENT_COLORS = (
    ("bastion_mcp.services.wsl_bootstrap", YELLOW),
    ("bastion_mcp.services.winrm_transport", MAGENTA),
    ("bastion_mcp.services.ssh_transport", MAGENTA),
    ("bastion_mcp.services.fingerprint", BLUE),
    ("bastion_mcp.services.router", BLUE),
    ("bastion_mcp.middleware", CYAN),
    ("bastion_mcp.server", CYAN),
    ("bastion_mcp.config", GREEN),
)

# (pattern, color) pairs highlighted inside messages
HIGHLIGHTS = (
    (re.compile(r"\b\d+(?:\.\d+)?ms\b(?: SLOW!)?"), YELLOW),
    (re.compile(r"\b[\w.\-]+@[\w.\-]+:\d+\b"), MAGENTA),
    (re.compile(r"\battempt \d+/\d+\b"), RED),
    (re.compile(r"\((?:retry later|stop and fix manually)\)"), RED),
)

# First keyword found in the lowercased message picks the line marker
EVENT_MARKERS = (
    (("starting", "ready to accept"), ">>>", GREEN),
    (("shutting down", "shutdown complete"), "<<<", RED),
    (("rebooting", "reboot issued"), "~~>", YELLOW),
    (("went offline", "accepts sessions again"), "<~>", YELLOW),
    (("failed", "error"), "!!!", RED),
    (("opening", "connecting"), " + ", CYAN),
    (("closed",), " - ", GREY),
)


class ColorfulFormatter(logging.Formatter):
    """Single-line formatter with colored level, component and highlights."""

    def __init__(self, use_colors: bool = True) -> None:
        """Initialize the formatter.

        Args:
            use_colors: Whether to emit ANSI colors.
        """
        super().__init__()
        self.use_colors = use_colors

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{RESET}" if self.use_colors else text

    @staticmethod
    def component_color(name: str) -> str:
        """Color for a logger name, by longest configured prefix."""
        matches = [
            (len(prefix), color) for prefix, color in COMPONENT_COLORS if name.startswith(prefix)
        ]
        return max(matches)[1] if matches else WHITE

    def format(self, record: logging.LogRecord) -> str:
        """Format the record as one line, plus any traceback."""
        created = datetime.fromtimestamp(record.created)
        stamp = f"{created:%H:%M:%S}.{int(record.msecs):03d} {created:%m/%d}"
        component = record.name.removeprefix("bastion_mcp.").removeprefix("services.")
        sep = self._paint("|", DIM)

        fields = (
            self._paint(stamp, DIM),
            self._paint(f"{record.levelname:<8}", LEVEL_COLORS.get(record.levelno, WHITE)),
            self._paint(f"{component:<24}", self.component_color(record.name)),
            self._highlight(record.getMessage()),
        )
        line = f" {sep} ".join(fields)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line

    def _highlight(self, message: str) -> str:
        if not self.use_colors:
            return message
        for pattern, color in HIGHLIGHTS:
            message = pattern.sub(lambda m, c=color: f"{c}{m.group(0)}{RESET}", message)
        return message


class MCPRequestFormatter(ColorfulFormatter):
    """Formatter that prefixes lifecycle and target events with a marker."""

    @staticmethod
    def marker_for(message: str) -> tuple[str, str] | None:
        """Marker and color for a message, or None for ordinary lines."""
        lowered = message.lower()
        for keywords, marker, color in EVENT_MARKERS:
            if any(keyword in lowered for keyword in keywords):
                return marker, color
        return None

    def format(self, record: logging.LogRecord) -> str:
        """Prefix the formatted line with its event marker."""
        line = super().format(record)
        if not self.use_colors:
            return line

        event = self.marker_for(record.getMessage())
        if event is None:
            return f"    {line}"
        marker, color = event
        return f"{self._paint(marker, color)} {line}"
