from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.enums import REJECTION_MESSAGES, RejectReason
from ..database.session import SessionProvider
from ..verification.qr_gateway import QRGateway
from .model import QRToken


@dataclass(frozen=True)
class QRValidation:
    is_valid: bool
    reason: Optional[RejectReason]
    bound_user_id: Optional[str] = None
    valid_for_date: Optional[date] = None
    expiry_time: Optional[datetime] = None

    @property
    def message(self) -> str:
        return "QR code valid" if self.is_valid else REJECTION_MESSAGES[self.reason]


class QRService:
    """Read-only QR checks for devices that want to pre-validate a scan."""

    def __init__(self, sessions: SessionProvider, gateway: QRGateway, *, clock: Callable[[], datetime] = now_local):
        self._sessions = sessions
        self._gateway = gateway
        self._clock = clock

    def get(self, code: str) -> Optional[QRToken]:
        code = require_non_empty(code, "qr_code")
        with self._sessions.session() as s:
            return s.tokens.get_by_code(code)

    def validate(self, code: str, *, user_id: Optional[str] = None, now: Optional[datetime] = None) -> QRValidation:
        code = require_non_empty(code, "qr_code")
        now = now or self._clock()

        with self._sessions.session() as s:
            token = s.tokens.get_by_code(code)

        decision = self._gateway.evaluate(token, now, user_id)
        if token is None:
            return QRValidation(is_valid=False, reason=decision.reason)
        return QRValidation(
            is_valid=decision.admitted,
            reason=decision.reason,
            bound_user_id=token.bound_user_id,
            valid_for_date=token.valid_from.date(),
            expiry_time=token.valid_until,
        )
