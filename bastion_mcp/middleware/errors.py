"""Error reporting middleware.

Failed requests are logged once, counted, and re-raised unchanged. Remote
execution errors carry a retry hint, which is logged alongside them and
tallied separately so an operator can see how many failures were transient.
"""

import logging
import traceback
from collections import Counter
from collections.abc import Callable
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from bastion_mcp.middleware.base import BastionMiddleware
from bastion_mcp.services.errors import BastionError

ErrorCallback = Callable[[Exception, MiddlewareContext], None]


def describe(error: Exception) -> tuple[str, bool | None]:
    """Operator hint and retryability for an exception.

    Returns:
        (hint, retryable); retryable is None for errors outside the
        remote execution taxonomy
    """
    if isinstance(error, BastionError):
        return error.hint, error.retryable
    if isinstance(error, ValueError):
        return "invalid request", False
    return "unexpected", None


class ErrorHandlingMiddleware(BastionMiddleware):
    """Logs, counts and re-raises errors from any MCP request.

    Example:
        >>> server.add_middleware(ErrorHandlingMiddleware(include_traceback=True))
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_traceback: bool = False,
        error_callback: ErrorCallback | None = None,
    ) -> None:
        """Initialize error handling middleware.

        Args:
            logger: Optional custom logger.
            include_traceback: Append the formatted traceback to error logs.
            error_callback: Called with each error and its context.
        """
        super().__init__(logger=logger)
        self.include_traceback = include_traceback
        self.error_callback = error_callback
        self._by_type: Counter[str] = Counter()
        self._retryable = 0

    def get_error_stats(self) -> dict[str, int]:
        """Error counts by exception type name."""
        return dict(self._by_type)

    @property
    def retryable_count(self) -> int:
        """Number of errors that were worth retrying."""
        return self._retryable

    def reset_stats(self) -> None:
        """Clear all counters."""
        self._by_type.clear()
        self._retryable = 0

    def _record(self, error: Exception, context: MiddlewareContext) -> None:
        hint, retryable = describe(error)
        self._by_type[type(error).__name__] += 1
        if retryable:
            self._retryable += 1

        message = "Error in %s: %s: %s [%s]"
        args: list[Any] = [context.method, type(error).__name__, str(error), hint]
        if self.include_traceback:
            message += "\n%s"
            args.append(traceback.format_exc())
        self.logger.error(message, *args)

    async def on_message(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Pass the request through, reporting any error it raises."""
        try:
            return await call_next(context)
        except Exception as e:
            self._record(e, context)
            if self.error_callback is not None:
                try:
                    self.error_callback(e, context)
                except Exception as callback_error:
                    self.logger.warning("Error callback failed: %s", callback_error)
            raise
