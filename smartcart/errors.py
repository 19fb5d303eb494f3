"""SmartCart error types and a shared error handler."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

CONNECTION_LOST_MESSAGE = "Server connection lost. Please try again in a moment."


class SmartCartError(Exception):
    """Base SmartCart error."""


class ApiError(SmartCartError):
    """Raised when the backend answers with a non-2xx status."""

    def __init__(self, status: int, message: str) -> None:
        self.status = status
        self.message = message
        super().__init__(f"{status}: {message}")


class UnauthorizedError(ApiError):
    """Raised on HTTP 401."""


class BatchError(ApiError):
    """Raised when the /api/batch call itself fails."""

    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(status, message or f"Batch API failed: {status}")

    def __str__(self) -> str:
        return f"Batch API failed: {self.status}"


class ConnectionLostError(SmartCartError):
    """Raised when the backend cannot be reached at all."""

    def __init__(self, message: str = CONNECTION_LOST_MESSAGE) -> None:
        super().__init__(message)


class OfflineDataUnavailableError(SmartCartError):
    """Raised when an offline read finds nothing cached."""

    def __init__(self, message: str = "No offline data available for this list") -> None:
        super().__init__(message)


Notifier = Callable[[str, str], None]


class ErrorHandler:
    """Log an error, notify the user, then run an optional fallback."""

    def __init__(
        self,
        log_error: bool = True,
        notify: Optional[Notifier] = None,
        fallback: Optional[Callable[[], None]] = None,
    ) -> None:
        self.log_error = log_error
        self.notify = notify
        self.fallback = fallback

    def handle_error(self, error: BaseException, context: Optional[str] = None) -> None:
        if self.log_error:
            where = f" in {context}" if context else ""
            logger.error(f"Error{where}: {error}")

        if self.notify is not None:
            self.notify(
                "Something went wrong",
                str(error) or "An unexpected error occurred",
            )

        if self.fallback is not None:
            self.fallback()

    async def handle_async_error(
        self,
        coro_fn: Callable[[], Awaitable[Any]],
        context: Optional[str] = None,
    ) -> Any:
        """Await ``coro_fn()``; report any failure and re-raise it."""
        try:
            return await coro_fn()
        except Exception as e:
            self.handle_error(e, context)
            raise
