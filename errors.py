"""
errors.py
---------
Error taxonomy for the data-access layer.
Every error raised by a reader or writer is a DataAccessError subclass,
so callers can map them (e.g. to HTTP status codes) without touching psycopg2.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional

import psycopg2

from utils.logger import get_logger

logger = get_logger(__name__)


class DataAccessError(Exception):
    """Base exception for all order/customer data-access errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidOptions(DataAccessError):
    """
    Raised when collection options are malformed.

    Examples:
    - page < 1 or per_page <= 0
    - Sort field not in the collection's allow-list
    - Sort direction other than asc/desc

    Always raised before any query is sent to the database.
    """


class NotFound(DataAccessError):
    """Raised when no row matches the requested identifier."""


class WriteError(DataAccessError):
    """
    Raised when a step of a transactional write fails.

    The transaction has already been rolled back by the time
    this reaches the caller.
    """


class OperationNotImplemented(DataAccessError, NotImplementedError):
    """Raised by operations that exist in the public surface but are not built yet."""


class ReadError(DataAccessError):
    """Raised when the database fails while serving a read."""


@contextmanager
def translating_read_errors(
    message: str,
    details: Optional[dict[str, Any]] = None,
    bad_key_is_missing: bool = False,
) -> Iterator[None]:
    """
    Turn psycopg2 errors raised inside the block into DataAccessErrors.

    Args:
        message: What was being read, e.g. "Order #7".
        details: Context attached to the raised error.
        bad_key_is_missing: Map psycopg2.DataError (a key the column type
            cannot hold, like 'O100' for an integer id) to NotFound.

    Raises:
        NotFound: For a malformed key when `bad_key_is_missing` is set.
        ReadError: For any other psycopg2.Error.
    """
    try:
        yield
    except psycopg2.Error as e:
        if bad_key_is_missing and isinstance(e, psycopg2.DataError):
            raise NotFound(f"{message} not found", details) from e
        logger.error(f"Failed to read {message}: {e}")
        raise ReadError(f"Failed to read {message}: {e}", details) from e
