"""Tests for error types and the shared error handler."""

import logging

import pytest

from smartcart.errors import (
    ApiError,
    BatchError,
    ConnectionLostError,
    ErrorHandler,
    OfflineDataUnavailableError,
    SmartCartError,
    UnauthorizedError,
)


def test_error_hierarchy_and_messages():
    assert issubclass(UnauthorizedError, ApiError)
    assert issubclass(BatchError, ApiError)
    assert issubclass(ConnectionLostError, SmartCartError)
    assert str(ApiError(404, "Not Found")) == "404: Not Found"
    assert str(BatchError(500)) == "Batch API failed: 500"
    assert str(ConnectionLostError()) == "Server connection lost. Please try again in a moment."
    assert str(OfflineDataUnavailableError()) == "No offline data available for this list"


def test_handle_error_logs_notifies_and_falls_back(caplog):
    notices = []
    fallbacks = []
    handler = ErrorHandler(
        notify=lambda title, message: notices.append((title, message)),
        fallback=lambda: fallbacks.append(True),
    )

    with caplog.at_level(logging.ERROR, logger="smartcart.errors"):
        handler.handle_error(ApiError(500, "boom"), "loading deals")

    assert "Error in loading deals: 500: boom" in caplog.text
    assert notices == [("Something went wrong", "500: boom")]
    assert fallbacks == [True]


def test_handle_error_without_message_uses_generic_text(caplog):
    notices = []
    handler = ErrorHandler(log_error=False, notify=lambda t, m: notices.append(m))

    with caplog.at_level(logging.ERROR, logger="smartcart.errors"):
        handler.handle_error(RuntimeError())

    assert caplog.text == ""
    assert notices == ["An unexpected error occurred"]


@pytest.mark.asyncio
async def test_handle_async_error_reports_and_reraises():
    notices = []
    handler = ErrorHandler(notify=lambda t, m: notices.append(m))

    async def failing():
        raise ConnectionLostError()

    with pytest.raises(ConnectionLostError):
        await handler.handle_async_error(failing, "sync")
    assert notices == ["Server connection lost. Please try again in a moment."]


@pytest.mark.asyncio
async def test_handle_async_error_returns_result():
    async def ok():
        return 42

    assert await ErrorHandler().handle_async_error(ok) == 42
