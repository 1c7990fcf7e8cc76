"""
Database Connection Management
PostgreSQL connections with the context manager pattern. Driver errors leave
this module as GatewayError so callers never import psycopg2 themselves.
"""

import psycopg2
from psycopg2.extras import RealDictCursor
from contextlib import contextmanager
import logging

from ebikecrm.config import config

logger = logging.getLogger(__name__)


class GatewayError(RuntimeError):
    """A store call failed (network, permission, constraint). Never retried."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code


def describe_error(exc: Exception) -> str:
    """Human-readable message for a driver error."""
    diag = getattr(exc, 'diag', None)
    primary = getattr(diag, 'message_primary', None) if diag is not None else None
    if primary:
        return primary
    text = str(exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__


@contextmanager
def get_db_connection():
    """
    Context manager for database connections.
    Commits on success, rolls back on error, always closes.

    Usage:
        with get_db_connection() as conn:
            cur = conn.cursor()
            cur.execute("SELECT * FROM bikes")
            results = cur.fetchall()
    """
    conn = None
    try:
        conn = psycopg2.connect(config.DATABASE_URL)
        logger.debug("Database connection established")
        yield conn
        conn.commit()
        logger.debug("Transaction committed")
    except psycopg2.Error as e:
        message = describe_error(e)
        if conn:
            conn.rollback()
            logger.error(f"Transaction rolled back due to error: {message}")
        else:
            logger.error(f"Could not connect to database: {message}")
        raise GatewayError(message, code=getattr(e, 'pgcode', None)) from e
    except Exception as e:
        if conn:
            conn.rollback()
            logger.error(f"Transaction rolled back due to error: {e}")
        raise
    finally:
        if conn:
            conn.close()
            logger.debug("Database connection closed")


@contextmanager
def get_db_cursor(dict_cursor=True):
    """
    Context manager for database cursor.
    Returns RealDictCursor by default so rows unpack straight into dataclasses.

    Usage:
        with get_db_cursor() as cur:
            cur.execute("SELECT * FROM sales WHERE id = %s", (42,))
            sale = cur.fetchone()
    """
    with get_db_connection() as conn:
        cursor_factory = RealDictCursor if dict_cursor else None
        cur = conn.cursor(cursor_factory=cursor_factory)
        try:
            yield cur
        finally:
            cur.close()
