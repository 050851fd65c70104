"""
Exception hierarchy for docnav.

Library errors derive from DocNavError, which carries a ``context``
dict that log calls pass on as structured fields. Failures are scoped to
one index load or one query; none is fatal to the host.
"""

from __future__ import annotations


class DocNavError(Exception):
    """
    Base exception for docnav.

    Attributes:
        context: Structured details for logs and display (source URL,
            status code, reason, ...)
    """

    def __init__(self, message: str, context: dict[str, object] | None = None):
        super().__init__(message)
        self.context = context or {}


class DocumentIndexError(DocNavError):
    """
    Document index could not be loaded.

    Raised when the site index resource is unreachable or malformed.
    Terminal for the source that raised it; navigation and search
    degrade to "unavailable".

    Example:
        raise DocumentIndexError(
            "Failed to load site index",
            context={
                "source": "/.docnav/site.json",
                "status_code": 404,
            }
        )
    """


class SearchError(DocNavError):
    """
    Search query failed.

    Raised when the live endpoint answers with a non-2xx status or a
    populated ``error`` field, when the transport fails, or when the
    static index cannot be queried. Scoped to one query.

    Example:
        raise SearchError(
            "Search failed: 500",
            context={
                "reason": "http_status",
                "status_code": 500,
            }
        )
    """


class IndexNotBuiltError(SearchError):
    """
    Static search index is missing or failed to initialize.

    Distinguishable from other query failures so callers can tell the
    user how to build the index.

    Example:
        raise IndexNotBuiltError(
            "Search index not available",
            context={"module": "pagefind"}
        )
    """


class ValidationError(DocNavError):
    """
    Input validation failed.

    Raised for invalid sort configurations or query contexts.

    Example:
        raise ValidationError(
            "Invalid sort field",
            context={
                "field": "order",
                "value": "sideways",
                "allowed_values": ["asc", "desc"]
            }
        )
    """


class ConfigurationError(DocNavError):
    """
    Configuration error.

    Raised when configuration loading, validation, or parsing fails.

    Example:
        raise ConfigurationError(
            "Invalid YAML in config file",
            context={"config_file": "/etc/docnav.yaml"}
        )
    """
