from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import ContextManager, Iterator, Protocol

from ..attendance.mysql_attendance_repository import MySQLAttendanceLedger
from ..attendance.repository import AttendanceLedger
from ..audit.mysql_audit_repository import MySQLAuditRepository
from ..audit.repository import AuditRepository
from ..qr.mysql_qr_repository import MySQLQRTokenStore
from ..qr.repository import QRTokenStore
from ..users.mysql_user_repository import MySQLUserRepository
from ..users.repository import UserRepository
from .connection import DatabaseConnection
from .mysql_base import db_cursor


@dataclass(frozen=True)
class StoreSession:
    """Repositories sharing one transaction."""

    users: UserRepository
    ledger: AttendanceLedger
    tokens: QRTokenStore
    audit: AuditRepository


class SessionProvider(Protocol):
    def session(self) -> ContextManager[StoreSession]:
        """Open a transaction; commit on normal exit, roll back on error, always release."""

        raise NotImplementedError


class MySQLSessionProvider(SessionProvider):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def session(self) -> Iterator[StoreSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            yield StoreSession(
                users=MySQLUserRepository(cur),
                ledger=MySQLAttendanceLedger(cur),
                tokens=MySQLQRTokenStore(cur),
                audit=MySQLAuditRepository(cur),
            )
