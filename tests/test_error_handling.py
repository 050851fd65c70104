"""
Tests for error handling and custom exceptions.

Verifies that custom exceptions include proper context and that
error handling utilities work correctly.
"""

from __future__ import annotations

import logging

import pytest

from docnav.exceptions import (
    ConfigurationError,
    DocNavError,
    DocumentIndexError,
    IndexNotBuiltError,
    SearchError,
    ValidationError,
)
from docnav.utils.error_handling import format_exception_for_display, log_errors


class TestCustomExceptions:
    """Test custom exception classes."""

    def test_docnav_error_base(self) -> None:
        """Base exception includes message and context."""
        error = DocNavError("Test error", context={"operation": "test", "value": 123})

        assert str(error) == "Test error"
        assert error.context == {"operation": "test", "value": 123}

    def test_docnav_error_without_context(self) -> None:
        error = DocNavError("Test error")

        assert error.context == {}

    @pytest.mark.parametrize(
        "error_class",
        [DocumentIndexError, SearchError, ValidationError, ConfigurationError],
    )
    def test_subclasses_carry_context(self, error_class: type[DocNavError]) -> None:
        context = {"source": "/.docnav/site.json", "status_code": 404}
        error = error_class("Failed", context=context)

        assert str(error) == "Failed"
        assert error.context == context
        assert isinstance(error, DocNavError)

    def test_index_not_built_is_a_search_error(self) -> None:
        """Callers catching SearchError also see a missing static index."""
        error = IndexNotBuiltError("Search index not available", context={"module": "pagefind"})

        assert isinstance(error, SearchError)
        assert error.context == {"module": "pagefind"}


class TestErrorHandlingUtilities:
    """Test error handling utility functions."""

    def test_format_exception_for_display_with_context(self) -> None:
        error = SearchError("Search failed: 500", context={"status_code": 500})

        assert format_exception_for_display(error) == {
            "error": "SearchError",
            "message": "Search failed: 500",
            "context": {"status_code": 500},
        }

    def test_format_exception_for_display_without_context(self) -> None:
        assert format_exception_for_display(SearchError("Search failed")) == {
            "error": "SearchError",
            "message": "Search failed",
        }

    def test_format_exception_for_display_generic_exception(self) -> None:
        assert format_exception_for_display(ValueError("Invalid value")) == {
            "error": "ValueError",
            "message": "Invalid value",
        }


class TestLogErrorsDecorator:
    """Test log_errors decorator."""

    def test_log_errors_sync_success(self) -> None:
        @log_errors("test_operation")
        def successful_function(x: int) -> int:
            return x * 2

        assert successful_function(21) == 42

    def test_log_errors_sync_failure(self, caplog: pytest.LogCaptureFixture) -> None:
        @log_errors("test_operation")
        def failing_function() -> None:
            raise ValueError("Test error")

        with caplog.at_level(logging.ERROR), pytest.raises(ValueError, match="Test error"):
            failing_function()

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.message == "Error in test_operation"
        assert record.operation == "test_operation"
        assert record.error_type == "ValueError"
        assert record.function == "failing_function"

    @pytest.mark.asyncio
    async def test_log_errors_async_success(self) -> None:
        @log_errors("async_operation")
        async def successful_async() -> str:
            return "done"

        assert await successful_async() == "done"

    @pytest.mark.asyncio
    async def test_log_errors_async_failure(self, caplog: pytest.LogCaptureFixture) -> None:
        @log_errors("async_operation")
        async def failing_async() -> None:
            raise SearchError("boom", context={"reason": "transport"})

        with caplog.at_level(logging.ERROR), pytest.raises(SearchError):
            await failing_async()

        record = caplog.records[0]
        assert record.operation == "async_operation"
        assert record.error_type == "SearchError"

    def test_log_errors_preserves_function_metadata(self) -> None:
        @log_errors("test_operation")
        def documented_function() -> None:
            """Function docstring."""

        assert documented_function.__name__ == "documented_function"
        assert documented_function.__doc__ == "Function docstring."
