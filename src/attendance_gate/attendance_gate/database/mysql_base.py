from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import mysql.connector
from mysql.connector import errors

from ..core.constants import MYSQL_ERR_DEADLOCK, MYSQL_ERR_LOCK_WAIT_TIMEOUT, MYSQL_ERR_QUERY_TIMEOUT
from ..core.exceptions import StorageUnavailable, TransactionConflict
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@contextmanager
def translate_errors() -> Iterator[None]:
    """Map driver errors to the storage error taxonomy.

    Errors without a mapping (syntax errors, integrity errors nobody handled)
    propagate unchanged.
    """
    try:
        yield
    except (errors.PoolError, errors.InterfaceError) as exc:
        raise StorageUnavailable(str(exc)) from exc
    except errors.DatabaseError as exc:
        if exc.errno in (MYSQL_ERR_DEADLOCK, MYSQL_ERR_LOCK_WAIT_TIMEOUT):
            raise TransactionConflict(str(exc)) from exc
        if exc.errno == MYSQL_ERR_QUERY_TIMEOUT or isinstance(exc, errors.OperationalError):
            raise StorageUnavailable(str(exc)) from exc
        raise


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """One transaction on one pooled connection.

    Commits when the block exits normally, rolls back on any exception, and
    always hands the connection back to the pool.
    """
    with translate_errors():
        conn = conn_factory.connect()
        try:
            cur = conn.cursor(dictionary=dictionary)
            try:
                yield conn, cur
                conn.commit()
            finally:
                cur.close()
        except BaseException:
            _safe_rollback(conn)
            raise
        finally:
            conn_factory.release(conn)


def _safe_rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error:
        # The server discards the transaction when the connection drops.
        logger.warning("rollback failed", exc_info=True)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])
