from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import MAXYEAR, MINYEAR, date, datetime
from typing import Callable, Optional, Sequence

from ..attendance.model import AttendanceEvent, DailyAttendanceSummary, MonthlyStatistics
from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import Direction, RejectReason
from ..core.exceptions import ValidationError
from ..database.session import SessionProvider
from .calculator import StandardWorkDurationCalculator, WorkDurationCalculator


class AttendanceReportService:
    """Read path over the ledger: history, today's summary, monthly statistics.

    Summaries are derived on the fly from the events; nothing here writes.
    """

    def __init__(
        self,
        sessions: SessionProvider,
        *,
        calculator: Optional[WorkDurationCalculator] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._sessions = sessions
        self._calculator = calculator or StandardWorkDurationCalculator()
        self._clock = clock

    def history(
        self,
        user_id: str,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[AttendanceEvent]:
        if start_date and end_date and start_date > end_date:
            raise ValidationError("start_date must not be after end_date", reason=RejectReason.INVALID_TIMESTAMP)
        with self._sessions.session() as s:
            return list(s.ledger.list_for_user(user_id, start_date=start_date, end_date=end_date, limit=limit))

    def today(self, user_id: str, *, today: Optional[date] = None) -> Optional[DailyAttendanceSummary]:
        today = today or self._clock().date()
        with self._sessions.session() as s:
            events = s.ledger.list_for_day(user_id, today)
        if not events:
            return None
        return self.summarize_day(user_id, today, events)

    def monthly_statistics(self, user_id: str, *, month: Optional[int] = None, year: Optional[int] = None) -> MonthlyStatistics:
        now = self._clock()
        month = now.month if month is None else int(month)
        year = now.year if year is None else int(year)
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12")
        if not MINYEAR <= year <= MAXYEAR:
            raise ValidationError(f"year must be between {MINYEAR} and {MAXYEAR}")

        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        with self._sessions.session() as s:
            events = s.ledger.list_for_user(user_id, start_date=first, end_date=last, limit=DEFAULT_HISTORY_LIMIT)

        by_day: dict[date, list[AttendanceEvent]] = defaultdict(list)
        for e in events:
            by_day[e.work_date].append(e)

        daily = [self.summarize_day(user_id, d, by_day[d]) for d in sorted(by_day, reverse=True)]
        total_check_ins = sum(1 for d in daily if d.check_in_time)
        total_check_outs = sum(1 for d in daily if d.check_out_time)
        total_seconds = sum(d.work_seconds for d in daily)
        total_hours = round(total_seconds / 3600, 2)
        average = round(total_hours / total_check_ins, 2) if total_check_ins else 0.0

        return MonthlyStatistics(
            user_id=user_id,
            month=month,
            year=year,
            total_check_ins=total_check_ins,
            total_check_outs=total_check_outs,
            total_work_hours=total_hours,
            average_daily_hours=average,
            daily=daily,
        )

    def summarize_day(self, user_id: str, work_date: date, events: Sequence[AttendanceEvent]) -> DailyAttendanceSummary:
        check_in = next((e for e in events if e.direction == Direction.CHECK_IN), None)
        check_out = next((e for e in events if e.direction == Direction.CHECK_OUT), None)

        check_in_time = check_in.event_time if check_in else None
        check_out_time = check_out.event_time if check_out else None
        return DailyAttendanceSummary(
            user_id=user_id,
            work_date=work_date,
            check_in_time=check_in_time,
            check_out_time=check_out_time,
            check_in_method=check_in.method if check_in else None,
            check_out_method=check_out.method if check_out else None,
            face_confidence_in=check_in.face_confidence if check_in else None,
            face_confidence_out=check_out.face_confidence if check_out else None,
            work_seconds=self._calculator.worked_seconds(check_in_time, check_out_time),
        )
