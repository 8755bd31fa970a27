"""
utils/logger.py
---------------
Logging setup for the data-access layer.
All modules should use `get_logger(__name__)` to obtain a logger instance.

The layer is usually embedded in a host process (web app, worker, test
runner) that may already own the root logger; in that case no handler is
added and only levels are applied.
"""

import logging
import sys

from config import LOG_LEVEL, LOG_SQL

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Logger that receives the built collection queries at DEBUG.
SQL_LOGGER = "repositories.query_builder"

_configured = False


def configure_logging(level: str = LOG_LEVEL, log_sql: bool = LOG_SQL) -> None:
    """
    Apply the layer's logging configuration.

    Args:
        level: Root level name, e.g. "INFO".
        log_sql: Emit every built query (with its bound parameters) at DEBUG.
    """
    global _configured
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
        root.addHandler(handler)
        root.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger(SQL_LOGGER).setLevel(logging.DEBUG if log_sql else logging.NOTSET)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger, configuring logging on first use.

    Args:
        name: Usually ``__name__`` of the calling module.
    """
    if not _configured:
        configure_logging()
    return logging.getLogger(name)
