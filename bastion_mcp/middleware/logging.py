"""Tool call logging with timing and credential redaction."""

import json
import logging
import time
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from bastion_mcp.middleware.base import BastionMiddleware

# Tool arguments whose values never reach the logs
SENSITIVE_ARGS = frozenset({"secret", "password", "passwd", "token"})
REDACTED = "***"

# Result keys worth surfacing in the one-line summary, in priority order
SUMMARY_KEYS = ("error", "state", "os")


def redact(args: dict[str, Any] | None) -> dict[str, Any]:
    """Copy of tool arguments with credential values masked."""
    return {
        key: REDACTED if key.lower() in SENSITIVE_ARGS else value
        for key, value in (args or {}).items()
    }


class LoggingMiddleware(BastionMiddleware):
    """Logs each tool call, its outcome and how long it took.

    A call is logged as ``>>> TOOL: name(args)`` on entry and
    ``<<< TOOL: name -> summary [12.3ms]`` on exit (``!!!`` on error).
    Calls slower than ``slow_threshold_ms`` are logged at WARNING.
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_payloads: bool = False,
        max_payload_length: int = 1000,
        slow_threshold_ms: float = 1000.0,
    ) -> None:
        """Initialize logging middleware.

        Args:
            logger: Optional custom logger.
            include_payloads: Also log full (redacted) arguments and results at DEBUG.
            max_payload_length: Payload characters kept before truncation.
            slow_threshold_ms: Duration above which a call counts as slow.
        """
        super().__init__(logger=logger)
        self.include_payloads = include_payloads
        self.max_payload_length = max_payload_length
        self.slow_threshold_ms = slow_threshold_ms

    def _truncate(self, data: Any) -> str:
        text = json.dumps(data, default=str)
        if len(text) > self.max_payload_length:
            return text[: self.max_payload_length] + "... [truncated]"
        return text

    @staticmethod
    def _signature(name: str, args: dict[str, Any]) -> str:
        shown = []
        for key, value in args.items():
            if isinstance(value, str) and len(value) > 50:
                value = value[:50] + "..."
            shown.append(f"{key}={value!r}")
        return f"{name}({', '.join(shown)})"

    def _elapsed(self, start: float) -> tuple[float, str]:
        ms = (time.perf_counter() - start) * 1000
        label = f"{ms:.1f}ms SLOW!" if ms >= self.slow_threshold_ms else f"{ms:.1f}ms"
        return ms, label

    @staticmethod
    def _summarize_result(result: Any) -> str:
        """One-line description of a tool result."""
        if result is None:
            return "null"
        if not isinstance(result, dict):
            return f"{len(result)} chars" if isinstance(result, str) else type(result).__name__
        for key in SUMMARY_KEYS:
            value = result.get(key)
            if value:
                return f"{key}={str(value)[:80]!r}" if key == "error" else f"{key}={value}"
        return f"{len(result)} field(s)"

    async def on_call_tool(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Log a tool call around its execution."""
        name = getattr(context.message, "name", "unknown")
        args = redact(getattr(context.message, "arguments", None))
        start = time.perf_counter()

        self.logger.info(">>> TOOL: %s", self._signature(name, args))
        if self.include_payloads and args:
            self.logger.debug("    Args: %s", self._truncate(args))

        try:
            result = await call_next(context)
        except Exception as e:
            _, label = self._elapsed(start)
            self.logger.error("!!! TOOL: %s -> %s: %s [%s]", name, type(e).__name__, e, label)
            raise

        ms, label = self._elapsed(start)
        payload = getattr(result, "structured_content", result)
        self.logger.log(
            logging.WARNING if ms >= self.slow_threshold_ms else logging.INFO,
            "<<< TOOL: %s -> %s [%s]",
            name,
            self._summarize_result(payload),
            label,
        )
        if self.include_payloads and payload is not None:
            self.logger.debug("    Result: %s", self._truncate(payload))
        return result

    async def on_message(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Log non-tool MCP traffic at DEBUG."""
        if context.method == "tools/call":
            return await call_next(context)

        start = time.perf_counter()
        self.logger.debug(">>> MCP: %s", context.method)
        result = await call_next(context)
        self.logger.debug("<<< MCP: %s [%s]", context.method, self._elapsed(start)[1])
        return result
