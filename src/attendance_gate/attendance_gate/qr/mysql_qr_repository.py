from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.enums import ConsumeResult
from ..database.mysql_base import fetchone
from .model import QRToken
from .repository import QRTokenStore


class MySQLQRTokenStore(QRTokenStore):
    def __init__(self, cur):
        self._cur = cur

    def get_by_code(self, code: str) -> Optional[QRToken]:
        self._cur.execute(
            """
            SELECT code, user_id, valid_from, valid_until, is_used, used_at, usage_count
            FROM qr_tokens
            WHERE code=%s
            """,
            (code,),
        )
        r = fetchone(self._cur)
        if not r:
            return None
        return QRToken(
            code=r["code"],
            bound_user_id=str(r["user_id"]) if r.get("user_id") is not None else None,
            valid_from=r["valid_from"],
            valid_until=r["valid_until"],
            is_used=bool(r.get("is_used")),
            used_at=r.get("used_at"),
            usage_count=int(r.get("usage_count") or 0),
        )

    def try_consume(self, code: str, now: datetime) -> ConsumeResult:
        # Compare-and-swap: InnoDB re-evaluates the WHERE clause after any
        # competing writer commits, so only one UPDATE can match.
        self._cur.execute(
            """
            UPDATE qr_tokens
            SET is_used=1, used_at=%s, usage_count=usage_count+1
            WHERE code=%s AND is_used=0 AND valid_from<=%s AND valid_until>%s
            """,
            (now, code, now, now),
        )
        if self._cur.rowcount == 1:
            return ConsumeResult.CONSUMED

        token = self.get_by_code(code)
        if token is None:
            return ConsumeResult.NOT_FOUND
        if token.is_used:
            return ConsumeResult.ALREADY_USED
        return ConsumeResult.EXPIRED
