from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

import mysql.connector
from mysql.connector import pooling

from ..core.exceptions import StorageUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    pool_name: str = "attendance_gate"
    pool_size: int = 10
    acquire_timeout: float = 5.0
    connect_timeout: int = 5
    # MAX_EXECUTION_TIME, which MySQL enforces on read-only SELECTs only
    statement_timeout_ms: int = 5000
    # innodb_lock_wait_timeout, the bound on INSERT and UPDATE
    lock_wait_timeout: int = 5

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config.get("database", "attendance_db")),
            pool_size=int(db_config.get("pool_size", 10)),
            acquire_timeout=float(db_config.get("acquire_timeout", 5.0)),
            connect_timeout=int(db_config.get("connect_timeout", 5)),
            statement_timeout_ms=int(db_config.get("statement_timeout_ms", 5000)),
            lock_wait_timeout=int(db_config.get("lock_wait_timeout", 5)),
        )


class DatabaseConnection:
    """Bounded pool of MySQL connections.

    Built once by ``build_container`` and handed to whoever needs it; there is
    no process-wide instance. ``connect()`` waits at most ``acquire_timeout``
    seconds for a free slot, and every connection it hands out must go back
    through ``release()``.
    """

    def __init__(self, config: DBConfig):
        self._config = config
        self._slots = threading.BoundedSemaphore(config.pool_size)
        self._lock = threading.Lock()
        self._pool: Optional[pooling.MySQLConnectionPool] = None
        self._closed = False

    @property
    def config(self) -> DBConfig:
        return self._config

    def _get_pool(self) -> pooling.MySQLConnectionPool:
        # Created on first use so building the app does not require a live DB.
        with self._lock:
            if self._closed:
                raise StorageUnavailable("connection pool is closed")
            if self._pool is None:
                self._pool = pooling.MySQLConnectionPool(
                    pool_name=self._config.pool_name,
                    pool_size=self._config.pool_size,
                    host=self._config.host,
                    port=int(self._config.port),
                    user=self._config.user,
                    password=self._config.password,
                    database=self._config.database,
                    connection_timeout=self._config.connect_timeout,
                    autocommit=False,
                )
            return self._pool

    def _prepare(self, conn: Any) -> None:
        cur = conn.cursor()
        try:
            cur.execute("SET SESSION TRANSACTION ISOLATION LEVEL READ COMMITTED")
            cur.execute("SET SESSION innodb_lock_wait_timeout = %s", (int(self._config.lock_wait_timeout),))
            cur.execute("SET SESSION MAX_EXECUTION_TIME = %s", (int(self._config.statement_timeout_ms),))
        finally:
            cur.close()

    def connect(self):
        if not self._slots.acquire(timeout=self._config.acquire_timeout):
            raise StorageUnavailable(f"no database connection available within {self._config.acquire_timeout}s")
        try:
            conn = self._get_pool().get_connection()
        except BaseException:
            self._slots.release()
            raise
        try:
            self._prepare(conn)
        except BaseException:
            self.release(conn)
            raise
        return conn

    def release(self, conn) -> None:
        try:
            conn.close()
        except mysql.connector.Error:
            # Broken connection: the pool reconnects the slot on next checkout.
            logger.warning("failed to return connection to pool", exc_info=True)
        finally:
            self._slots.release()

    def close(self) -> None:
        """Refuse new checkouts and close the connections idling in the pool.

        Connections still checked out stay open until they are released.
        """
        with self._lock:
            self._closed = True
            pool, self._pool = self._pool, None
        if pool is None:
            return
        try:
            closed = pool._remove_connections()
        except mysql.connector.Error:
            logger.warning("failed to close idle pooled connections", exc_info=True)
            return
        logger.info("connection pool %s closed (%s idle connections)", self._config.pool_name, closed)
