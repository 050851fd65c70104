"""Logging setup for hosts embedding docnav: JSON or text lines on stdout."""

from __future__ import annotations

import logging
import sys

from pythonjsonlogger.json import JsonFormatter

from docnav.utils.query_context import get_query_id

JSON_FORMAT = "%(timestamp)s %(levelname)s %(name)s %(message)s %(query_id)s"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(query_id)s] - %(message)s"
NO_QUERY_ID = "no-query-id"

# Transport libraries log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


class QueryIDFilter(logging.Filter):
    """Stamp each record with the search query it was logged under."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.query_id = get_query_id() or NO_QUERY_ID
        return True


def _formatter(use_json: bool) -> logging.Formatter:
    if use_json:
        return JsonFormatter(JSON_FORMAT, timestamp=True)
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def configure_json_logging(log_level: str = "INFO", use_json: bool = True) -> None:
    """
    Replace the root handlers with one stdout handler.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (any case)
        use_json: JSON lines when True, plain text otherwise
    """
    level = logging.getLevelName(log_level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(QueryIDFilter())
    handler.setFormatter(_formatter(use_json))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
