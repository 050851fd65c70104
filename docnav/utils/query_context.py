"""
Query context management using ContextVars.

Provides query ID tracking across async boundaries for log correlation.
"""

from __future__ import annotations

import contextvars
from typing import Optional

# Context variable for the query generation being dispatched
query_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "query_id",
    default=None,
)

QueryIDToken = contextvars.Token[Optional[str]]


def get_query_id() -> Optional[str]:
    """Get current query ID from context."""
    return query_id_var.get()


def set_query_id(query_id: str) -> QueryIDToken:
    """Set query ID in context; pass the returned token to ``clear_query_id``."""
    return query_id_var.set(query_id)


def format_query_id(dispatcher_id: int, generation: int) -> str:
    """Build a query ID from a dispatcher identity and its generation counter."""
    return f"{dispatcher_id:x}-{generation}"


def clear_query_id(token: QueryIDToken) -> None:
    """Restore the query ID that was active before ``set_query_id``."""
    query_id_var.reset(token)
