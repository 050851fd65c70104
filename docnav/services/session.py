"""
Session wiring.

Builds the services of one browsing session from settings: logging, the
document index source, the search backend and its dispatcher.
"""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from docnav.config import Settings, load_settings
from docnav.logging_config import configure_json_logging
from docnav.services.document_index import DocumentIndexSource
from docnav.services.search_backends import create_backend
from docnav.services.search_dispatcher import ChangeCallback, SearchDispatcher

logger = logging.getLogger(__name__)


class DocNavSession:
    """Container for the services of one session."""

    def __init__(
        self,
        settings: Settings,
        document_index: DocumentIndexSource,
        search: SearchDispatcher,
    ) -> None:
        self.settings = settings
        self.document_index = document_index
        self.search = search

    def close(self) -> None:
        self.search.close()


def open_session(
    settings: Settings | None = None,
    *,
    config_path: str | Path | None = None,
    http_client: httpx.AsyncClient | None = None,
    on_change: ChangeCallback | None = None,
    configure_logging: bool = True,
) -> DocNavSession:
    """
    Create the services for one session.

    Settings are loaded from ``config_path`` (or ``$DOCNAV_CONFIG``) when not
    given. Logging is configured from ``settings.log_level`` and
    ``settings.log_json`` unless the host manages logging itself.

    Raises:
        ConfigurationError: If the settings file is invalid
    """
    if settings is None:
        settings = load_settings(config_path)

    if configure_logging:
        configure_json_logging(log_level=settings.log_level, use_json=settings.log_json)

    document_index = DocumentIndexSource.from_settings(settings, http_client=http_client)
    backend = create_backend(settings, http_client=http_client)
    search = SearchDispatcher.from_settings(settings, backend, on_change=on_change)

    logger.info(
        "Session opened",
        extra={
            "execution_mode": settings.execution_mode.value,
            "index_source": document_index.source,
        },
    )
    return DocNavSession(settings, document_index, search)
