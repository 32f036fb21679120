from __future__ import annotations

from ..database.mysql_base import translate_errors
from .model import AuditEntry
from .repository import AuditRepository


class MySQLAuditRepository(AuditRepository):
    def __init__(self, cur):
        self._cur = cur

    def insert(self, entry: AuditEntry) -> None:
        # deadlocks and lost connections surface as StorageError
        with translate_errors():
            self._cur.execute(
                """
                INSERT INTO audit_logs(user_id, action, description, ip_address, user_agent, status, created_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    entry.user_id,
                    entry.action,
                    entry.description,
                    entry.ip_address,
                    entry.user_agent,
                    entry.outcome.value,
                    entry.created_at,
                ),
            )
