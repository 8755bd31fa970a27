"""
db/connection.py
----------------
Manages the PostgreSQL connection pool.
Uses psycopg2's ThreadedConnectionPool for efficient connection reuse.

A `Store` is created once by the process that owns the database and handed
to every repository; repositories never reach for a global connection.
"""

from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2 import pool, extras

from config import DATABASE_URL, DB_POOL_MAX, DB_POOL_MIN
from utils.logger import get_logger

logger = get_logger(__name__)


def _rollback(conn) -> None:
    """
    Roll back `conn` if it is still usable.

    A failed rollback on a broken connection is logged, not raised, so the
    error that caused the rollback is the one the caller sees.
    """
    if conn.closed:
        return
    try:
        conn.rollback()
    except psycopg2.Error as e:
        logger.warning(f"Rollback failed on a broken connection: {e}")


class Store:
    """
    Owns a connection pool and hands out scoped sessions and transactions.

    Any pool exposing ``getconn()`` / ``putconn(conn, close=...)`` works, which is how
    the test suite swaps in an in-memory fake.
    """

    def __init__(self, conn_pool):
        self._pool = conn_pool

    @classmethod
    def connect(
        cls,
        dsn: str = DATABASE_URL,
        min_conn: int = DB_POOL_MIN,
        max_conn: int = DB_POOL_MAX,
    ) -> "Store":
        """
        Open a new connection pool.

        Args:
            dsn: libpq connection string.
            min_conn: Minimum number of connections to keep open.
            max_conn: Maximum number of connections allowed.

        Raises:
            psycopg2.OperationalError: If the database is unreachable.
        """
        try:
            conn_pool = pool.ThreadedConnectionPool(min_conn, max_conn, dsn)
        except psycopg2.OperationalError as e:
            logger.error(f"Failed to initialize database pool: {e}")
            raise
        logger.info("Database connection pool initialized successfully.")
        return cls(conn_pool)

    @contextmanager
    def session(self) -> Iterator:
        """
        Check a connection out of the pool for the duration of the block.

        The connection is always returned, and any transaction a read left
        open is rolled back first so the pool never hands out a dirty session.
        """
        conn = self._pool.getconn()
        try:
            yield conn
        finally:
            _rollback(conn)
            self._pool.putconn(conn, close=bool(conn.closed))

    @contextmanager
    def cursor(self) -> Iterator:
        """Read-only helper: a dict cursor on a pooled session."""
        with self.session() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                yield cur

    @contextmanager
    def transaction(self) -> Iterator:
        """
        Run the block inside a single database transaction.

        Commits when the block exits normally. On any exception, including
        KeyboardInterrupt and GeneratorExit, rolls back before re-raising.
        """
        with self.session() as conn:
            try:
                with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                    yield cur
                conn.commit()
            except BaseException:
                _rollback(conn)
                raise

    def close(self) -> None:
        """Close all connections in the pool."""
        self._pool.closeall()
        logger.info("Database connection pool closed.")
