from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import Direction
from .model import AttendanceEvent


class AttendanceLedger(Protocol):
    """Append-only store of admitted attendance events.

    Implementations are bound to one transactional session.
    """

    def has_direction_on(self, user_id: str, direction: Direction, work_date: date) -> bool:
        raise NotImplementedError

    def insert(self, event: AttendanceEvent) -> str:
        """Insert the event and return its id.

        Raises DuplicateDirection when the (user_id, direction, work_date)
        uniqueness constraint is violated.
        """

        raise NotImplementedError

    def list_for_day(self, user_id: str, work_date: date) -> Sequence[AttendanceEvent]:
        raise NotImplementedError

    def list_for_user(
        self,
        user_id: str,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[AttendanceEvent]:
        raise NotImplementedError
