from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from mysql.connector import errors

from ..core.constants import DEFAULT_HISTORY_LIMIT, MYSQL_ERR_DUPLICATE_ENTRY
from ..core.enums import Direction, Method
from ..core.exceptions import DuplicateDirection
from ..database.mysql_base import fetchall, fetchone
from .model import AttendanceEvent
from .repository import AttendanceLedger

_COLUMNS = """
    event_id, user_id, method, direction, work_date, event_time,
    face_confidence, qr_code, location, ip_address, device_info, created_at
"""


def _to_event(r: dict) -> AttendanceEvent:
    confidence = r.get("face_confidence")
    return AttendanceEvent(
        event_id=str(r["event_id"]),
        user_id=str(r["user_id"]),
        method=Method(r["method"]),
        direction=Direction(r["direction"]),
        work_date=r["work_date"],
        event_time=r["event_time"],
        face_confidence=float(confidence) if confidence is not None else None,
        qr_code=r.get("qr_code"),
        location=r.get("location"),
        ip_address=r.get("ip_address"),
        device_info=r.get("device_info"),
        created_at=r.get("created_at"),
    )


class MySQLAttendanceLedger(AttendanceLedger):
    """Ledger over ``attendance_events``.

    The table carries UNIQUE(user_id, direction, work_date); that key, not the
    pre-check, is what keeps concurrent duplicates out.
    """

    def __init__(self, cur):
        self._cur = cur

    def has_direction_on(self, user_id: str, direction: Direction, work_date: date) -> bool:
        self._cur.execute(
            """
            SELECT event_id
            FROM attendance_events
            WHERE user_id=%s AND direction=%s AND work_date=%s
            """,
            (str(user_id), direction.value, work_date),
        )
        return fetchone(self._cur) is not None

    def insert(self, event: AttendanceEvent) -> str:
        try:
            self._cur.execute(
                """
                INSERT INTO attendance_events(
                    event_id, user_id, method, direction, work_date, event_time,
                    face_confidence, qr_code, location, ip_address, device_info
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    event.event_id,
                    str(event.user_id),
                    event.method.value,
                    event.direction.value,
                    event.work_date,
                    event.event_time,
                    event.face_confidence,
                    event.qr_code,
                    event.location,
                    event.ip_address,
                    event.device_info,
                ),
            )
        except errors.IntegrityError as exc:
            if exc.errno == MYSQL_ERR_DUPLICATE_ENTRY:
                raise DuplicateDirection(event.direction) from exc
            raise
        return event.event_id

    def list_for_day(self, user_id: str, work_date: date) -> Sequence[AttendanceEvent]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM attendance_events
            WHERE user_id=%s AND work_date=%s
            ORDER BY event_time ASC
            """,
            (str(user_id), work_date),
        )
        return [_to_event(r) for r in fetchall(self._cur)]

    def list_for_user(
        self,
        user_id: str,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[AttendanceEvent]:
        clauses = ["user_id=%s"]
        params: list[object] = [str(user_id)]

        if start_date is not None:
            clauses.append("work_date >= %s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("work_date <= %s")
            params.append(end_date)
        params.append(int(limit))

        where = " AND ".join(clauses)
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM attendance_events
            WHERE {where}
            ORDER BY event_time DESC
            LIMIT %s
            """,
            tuple(params),
        )
        return [_to_event(r) for r in fetchall(self._cur)]
