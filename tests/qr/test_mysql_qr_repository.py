from __future__ import annotations

from datetime import datetime, timedelta

from src.attendance_gate.attendance_gate.core.enums import ConsumeResult
from src.attendance_gate.attendance_gate.qr.mysql_qr_repository import MySQLQRTokenStore

T0 = datetime(2025, 3, 3, 8, 0)


class FakeCursor:
    """Replays canned rows and records every statement."""

    def __init__(self, *, rowcount=0, rows=None):
        self.rowcount = rowcount
        self._rows = list(rows or [])
        self.executed = []

    def execute(self, sql, params=None):
        self.executed.append((" ".join(sql.split()), params))

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None


def _row(**kw):
    row = dict(code="QR-1", user_id=None, valid_from=T0, valid_until=T0 + timedelta(hours=8), is_used=0, used_at=None, usage_count=0)
    row.update(kw)
    return row


def test_consume_is_a_single_conditional_update():
    cur = FakeCursor(rowcount=1)
    now = T0 + timedelta(hours=1)

    assert MySQLQRTokenStore(cur).try_consume("QR-1", now) == ConsumeResult.CONSUMED

    assert len(cur.executed) == 1
    sql, params = cur.executed[0]
    assert sql.startswith("UPDATE qr_tokens SET is_used=1")
    assert "WHERE code=%s AND is_used=0 AND valid_from<=%s AND valid_until>%s" in sql
    assert params == (now, "QR-1", now, now)


def test_lost_update_is_classified_by_rereading():
    now = T0 + timedelta(hours=1)

    assert MySQLQRTokenStore(FakeCursor()).try_consume("QR-1", now) == ConsumeResult.NOT_FOUND
    assert MySQLQRTokenStore(FakeCursor(rows=[_row(is_used=1)])).try_consume("QR-1", now) == ConsumeResult.ALREADY_USED
    assert MySQLQRTokenStore(FakeCursor(rows=[_row()])).try_consume("QR-1", T0 + timedelta(hours=9)) == ConsumeResult.EXPIRED


def test_get_by_code_maps_binding():
    token = MySQLQRTokenStore(FakeCursor(rows=[_row(user_id=42, usage_count=None)])).get_by_code("QR-1")

    assert token.bound_user_id == "42"
    assert token.usage_count == 0
    assert token.is_used is False
