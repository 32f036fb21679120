from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .attendance.service import AttendanceService
from .core.constants import DEFAULT_LOCATION
from .database.connection import DBConfig, DatabaseConnection
from .database.session import MySQLSessionProvider, SessionProvider
from .qr.service import QRService
from .reports.service import AttendanceReportService
from .verification.face_gateway import FaceGateway
from .verification.qr_gateway import QRGateway


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    sessions: SessionProvider

    face_gateway: FaceGateway
    qr_gateway: QRGateway

    attendance_service: AttendanceService
    report_service: AttendanceReportService
    qr_service: QRService

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()


def build_services(sessions: SessionProvider, *, settings: Any = None, conn: Optional[DatabaseConnection] = None) -> Container:
    face_gateway = FaceGateway()
    qr_gateway = QRGateway(require_bound_tokens=bool(getattr(settings, "QR_REQUIRE_BOUND_TOKENS", False)))

    attendance_service = AttendanceService(
        sessions,
        face_gateway=face_gateway,
        qr_gateway=qr_gateway,
        default_location=str(getattr(settings, "DEFAULT_LOCATION", DEFAULT_LOCATION)),
        reveal_inactive_users=bool(getattr(settings, "REVEAL_INACTIVE_USERS", False)),
    )
    report_service = AttendanceReportService(sessions)
    qr_service = QRService(sessions, qr_gateway)

    return Container(
        conn=conn,
        sessions=sessions,
        face_gateway=face_gateway,
        qr_gateway=qr_gateway,
        attendance_service=attendance_service,
        report_service=report_service,
        qr_service=qr_service,
    )


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))
    return build_services(MySQLSessionProvider(conn), settings=settings, conn=conn)
