"""
Error handling helpers shared by the index, scanner and search services.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from docnav.exceptions import DocNavError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_failure(operation_name: str, func: Callable[..., Any], exc: Exception) -> None:
    extra: dict[str, object] = {
        "operation": operation_name,
        "error_type": type(exc).__name__,
        "function": func.__name__,
    }
    if isinstance(exc, DocNavError):
        extra.update({f"context_{key}": value for key, value in exc.context.items()})
    logger.exception(f"Error in {operation_name}", extra=extra)


def log_errors(operation_name: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Log any exception escaping the wrapped call, then re-raise it.

    Works for plain functions and coroutine functions. The context of a
    ``DocNavError`` is copied into the log record with a ``context_`` prefix.

    Example:
        @log_errors("scan_documents")
        def scan_documents(root: Path) -> list[DocumentRecord]:
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> T:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    _log_failure(operation_name, func, e)
                    raise

            return async_wrapper  # type: ignore[return-value]

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _log_failure(operation_name, func, e)
                raise

        return sync_wrapper

    return decorator


def format_exception_for_display(e: Exception) -> dict[str, object]:
    """
    Render an exception as a plain dict for presentation code.

    Returns ``{"error": <class name>, "message": <text>}`` plus ``context``
    when a ``DocNavError`` carries one.
    """
    error_dict: dict[str, object] = {
        "error": type(e).__name__,
        "message": str(e),
    }
    if isinstance(e, DocNavError) and e.context:
        error_dict["context"] = e.context
    return error_dict
