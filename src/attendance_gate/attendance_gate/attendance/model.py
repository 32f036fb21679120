from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union

from ..core.enums import Direction, Method, REJECTION_MESSAGES, RejectReason


@dataclass(frozen=True)
class Origin:
    """Network/device descriptor of the caller."""

    ip_address: Optional[str] = None
    device_info: Optional[str] = None


@dataclass(frozen=True)
class AttendanceRequest:
    """Evidence collected by the caller for one check-in/check-out attempt."""

    user_id: Optional[str]
    method: Method
    confidence: object = None
    qr_code: Optional[str] = None
    timestamp: object = None
    location: Optional[str] = None
    origin: Origin = field(default_factory=Origin)


@dataclass(frozen=True)
class AttendanceEvent:
    """Domain entity: one admitted check-in or check-out."""

    event_id: str
    user_id: str
    method: Method
    direction: Direction
    work_date: date
    event_time: datetime
    face_confidence: Optional[float] = None
    qr_code: Optional[str] = None
    location: Optional[str] = None
    ip_address: Optional[str] = None
    device_info: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.event_id,
            "user_id": self.user_id,
            "type": self.method.value,
            "status": self.direction.value,
            "work_date": self.work_date.isoformat(),
            "timestamp": self.event_time.isoformat(),
            "face_confidence": self.face_confidence,
            "qr_code": self.qr_code,
            "location": self.location,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class Admitted:
    event: AttendanceEvent


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason
    message: str = ""

    @classmethod
    def of(cls, reason: RejectReason, message: Optional[str] = None) -> "Rejected":
        return cls(reason=reason, message=message or REJECTION_MESSAGES[reason])

    @property
    def retryable(self) -> bool:
        return self.reason.retryable


AttendanceResult = Union[Admitted, Rejected]


@dataclass(frozen=True)
class DailyAttendanceSummary:
    """Read-model: one user's attendance for one calendar day."""

    user_id: str
    work_date: date
    check_in_time: Optional[datetime]
    check_out_time: Optional[datetime]
    check_in_method: Optional[Method] = None
    check_out_method: Optional[Method] = None
    face_confidence_in: Optional[float] = None
    face_confidence_out: Optional[float] = None
    work_seconds: int = 0


@dataclass(frozen=True)
class MonthlyStatistics:
    user_id: str
    month: int
    year: int
    total_check_ins: int
    total_check_outs: int
    total_work_hours: float
    average_daily_hours: float
    daily: list[DailyAttendanceSummary] = field(default_factory=list)
