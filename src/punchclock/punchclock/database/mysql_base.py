from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import StorageUnavailable
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Run one unit of work in its own connection and transaction.

    Commits on success and rolls back on any error. Integrity errors reach the
    caller untouched so repositories can map them; every other driver error is
    raised as StorageUnavailable.
    """

    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError:
        conn.rollback()
        raise
    except mysql.connector.Error as e:
        logger.error("database operation failed: %s", e)
        _safe_rollback(conn)
        raise StorageUnavailable("Attendance storage is unavailable") from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _safe_rollback(conn) -> None:
    # The connection may already be gone when the driver failed.
    try:
        conn.rollback()
    except mysql.connector.Error as e:
        logger.warning("rollback after failure also failed: %s", e)


def is_duplicate_key(error: mysql.connector.Error) -> bool:
    return getattr(error, "errno", None) == errorcode.ER_DUP_ENTRY


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])
