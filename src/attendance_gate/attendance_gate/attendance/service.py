from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional

from ..audit.model import AuditEntry, action_tag
from ..audit.trail import AuditTrail
from ..common.datetime_utils import now_local
from ..common.validators import optional_timestamp, require_confidence, require_non_empty
from ..core.constants import DEFAULT_LOCATION, QR_CODE_AUDIT_PREFIX
from ..core.enums import ConsumeResult, Direction, Method, Outcome, RejectReason
from ..core.exceptions import DuplicateDirection, StorageUnavailable, TransactionConflict, ValidationError
from ..database.session import SessionProvider, StoreSession
from ..verification.base import Decision
from ..verification.face_gateway import FaceGateway
from ..verification.qr_gateway import QRGateway
from .model import Admitted, AttendanceEvent, AttendanceRequest, AttendanceResult, Rejected
from .repository import AttendanceLedger

logger = logging.getLogger(__name__)

_LOST_CONSUME_RACE = {
    ConsumeResult.ALREADY_USED: RejectReason.QR_ALREADY_USED,
    ConsumeResult.EXPIRED: RejectReason.QR_EXPIRED,
    ConsumeResult.NOT_FOUND: RejectReason.QR_NOT_FOUND,
}


@dataclass
class _Attempt:
    action: str
    request: AttendanceRequest
    now: datetime
    user_id: Optional[str] = None


@dataclass(frozen=True)
class _Evidence:
    user_id: str
    confidence: Optional[float]
    qr_code: Optional[str]
    client_time: Optional[datetime]


class _Abort(Exception):
    """Leaves the transaction (rolling it back) with a rejection to report."""

    def __init__(self, result: Rejected, detail: str):
        super().__init__(detail)
        self.result = result
        self.detail = detail


class AttendanceService:
    """Attendance state-transition engine.

    The only code path that writes attendance events. Each request runs in a
    single transaction: resolve the user, check today's ledger state, ask the
    verification gateway, then insert the event, consume the QR token and
    write the audit entry together.

    Every call leaves exactly one audit entry. Rejections decided inside the
    transaction are audited and committed with it; failures that roll the
    transaction back are audited afterwards in a second, independent
    transaction.
    """

    def __init__(
        self,
        sessions: SessionProvider,
        *,
        face_gateway: Optional[FaceGateway] = None,
        qr_gateway: Optional[QRGateway] = None,
        audit_trail: Optional[AuditTrail] = None,
        default_location: str = DEFAULT_LOCATION,
        reveal_inactive_users: bool = False,
        clock: Callable[[], datetime] = now_local,
    ):
        self._sessions = sessions
        self._face = face_gateway or FaceGateway()
        self._qr = qr_gateway or QRGateway()
        self._audit = audit_trail or AuditTrail()
        self._default_location = default_location
        self._reveal_inactive_users = bool(reveal_inactive_users)
        self._clock = clock

    def request_check_in(self, request: AttendanceRequest, *, now: Optional[datetime] = None) -> AttendanceResult:
        return self._transition(Direction.CHECK_IN, request, now=now)

    def request_check_out(self, request: AttendanceRequest, *, now: Optional[datetime] = None) -> AttendanceResult:
        return self._transition(Direction.CHECK_OUT, request, now=now)

    def _transition(self, direction: Direction, request: AttendanceRequest, *, now: Optional[datetime]) -> AttendanceResult:
        now = now or self._clock()
        attempt = _Attempt(action=action_tag(direction, request.method), request=request, now=now)

        try:
            evidence = self._validate(request)
        except ValidationError as e:
            detail = f"{e} (user_id={request.user_id!r})"
            return self._reject_independently(attempt, Rejected.of(e.reason), detail)

        try:
            with self._sessions.session() as s:
                return self._admit(s, direction, attempt, evidence)
        except _Abort as abort:
            return self._reject_independently(attempt, abort.result, abort.detail)
        except DuplicateDirection as e:
            reason = (
                RejectReason.ALREADY_CHECKED_IN
                if e.direction == Direction.CHECK_IN
                else RejectReason.ALREADY_CHECKED_OUT
            )
            return self._reject_independently(attempt, Rejected.of(reason), "concurrent duplicate rejected by unique key")
        except StorageUnavailable as e:
            logger.warning("%s storage unavailable: %s", attempt.action, e)
            return self._reject_independently(attempt, Rejected.of(RejectReason.STORAGE_UNAVAILABLE), str(e))
        except TransactionConflict as e:
            logger.warning("%s transaction conflict: %s", attempt.action, e)
            return self._reject_independently(attempt, Rejected.of(RejectReason.TRANSACTION_CONFLICT), str(e))
        except Exception as e:
            logger.exception("%s failed for user_id=%s", attempt.action, request.user_id)
            self._record_independently(self._entry(attempt, Outcome.FAILED, f"Error: {e}"))
            raise

    @staticmethod
    def _validate(request: AttendanceRequest) -> _Evidence:
        user_id = require_non_empty(request.user_id, "user_id")
        client_time = optional_timestamp(request.timestamp)

        if request.method == Method.FACE:
            return _Evidence(user_id=user_id, confidence=require_confidence(request.confidence), qr_code=None, client_time=client_time)

        qr_code = require_non_empty(request.qr_code, "qr_code")
        return _Evidence(user_id=user_id, confidence=None, qr_code=qr_code, client_time=client_time)

    def _admit(self, s: StoreSession, direction: Direction, attempt: _Attempt, evidence: _Evidence) -> AttendanceResult:
        today = attempt.now.date()

        user = s.users.get_by_id(evidence.user_id)
        if user is None or not user.is_active:
            reason = RejectReason.USER_NOT_FOUND
            if user is not None and self._reveal_inactive_users:
                reason = RejectReason.USER_INACTIVE
            state = "inactive" if user is not None else "unknown"
            return self._reject_in(s, attempt, Rejected.of(reason), f"{state} user_id={evidence.user_id!r}")
        attempt.user_id = user.user_id

        conflict = self._state_conflict(s.ledger, direction, user.user_id, today)
        if conflict is not None:
            return self._reject_in(s, attempt, Rejected.of(conflict), "")

        decision = self._verify(s, attempt, evidence, user.user_id)
        if not decision.admitted:
            return self._reject_in(s, attempt, Rejected.of(decision.reason), self._evidence_note(evidence))

        event = AttendanceEvent(
            event_id=str(uuid.uuid4()),
            user_id=user.user_id,
            method=attempt.request.method,
            direction=direction,
            work_date=today,
            event_time=evidence.client_time or attempt.now,
            face_confidence=evidence.confidence,
            qr_code=evidence.qr_code,
            location=attempt.request.location or self._default_location,
            ip_address=attempt.request.origin.ip_address,
            device_info=attempt.request.origin.device_info,
            created_at=attempt.now,
        )
        s.ledger.insert(event)

        if evidence.qr_code is not None:
            consumed = s.tokens.try_consume(evidence.qr_code, attempt.now)
            if consumed != ConsumeResult.CONSUMED:
                raise _Abort(Rejected.of(_LOST_CONSUME_RACE[consumed]), f"token lost at write time: {consumed.value}")

        verb = "Check-in" if direction == Direction.CHECK_IN else "Check-out"
        self._audit.record(s.audit, self._entry(attempt, Outcome.SUCCESS, f"{verb} {self._evidence_note(evidence)}"))
        logger.info("%s admitted user_id=%s event_id=%s", attempt.action, user.user_id, event.event_id)
        return Admitted(event)

    @staticmethod
    def _state_conflict(ledger: AttendanceLedger, direction: Direction, user_id: str, today: date) -> Optional[RejectReason]:
        checked_in = ledger.has_direction_on(user_id, Direction.CHECK_IN, today)
        if direction == Direction.CHECK_IN:
            return RejectReason.ALREADY_CHECKED_IN if checked_in else None

        if not checked_in:
            return RejectReason.NOT_CHECKED_IN_YET
        if ledger.has_direction_on(user_id, Direction.CHECK_OUT, today):
            return RejectReason.ALREADY_CHECKED_OUT
        return None

    def _verify(self, s: StoreSession, attempt: _Attempt, evidence: _Evidence, user_id: str) -> Decision:
        if evidence.qr_code is None:
            return self._face.evaluate(evidence.confidence)
        token = s.tokens.get_by_code(evidence.qr_code)
        return self._qr.evaluate(token, attempt.now, user_id)

    @staticmethod
    def _evidence_note(evidence: _Evidence) -> str:
        if evidence.qr_code is None:
            return f"with face recognition (confidence: {evidence.confidence})"
        return f"with QR Code: {evidence.qr_code[:QR_CODE_AUDIT_PREFIX]}..."

    # -------- audit helpers --------
    def _entry(self, attempt: _Attempt, outcome: Outcome, description: str) -> AuditEntry:
        return AuditEntry(
            action=attempt.action,
            description=description,
            outcome=outcome,
            created_at=attempt.now,
            user_id=attempt.user_id,
            ip_address=attempt.request.origin.ip_address,
            user_agent=attempt.request.origin.device_info,
        )

    @staticmethod
    def _failure_description(result: Rejected, detail: str) -> str:
        text = f"{result.reason.value}: {result.message}"
        return f"{text} [{detail}]" if detail else text

    def _reject_in(self, s: StoreSession, attempt: _Attempt, result: Rejected, detail: str) -> Rejected:
        logger.info("%s rejected user_id=%s reason=%s", attempt.action, attempt.request.user_id, result.reason.value)
        self._audit.record(s.audit, self._entry(attempt, Outcome.FAILED, self._failure_description(result, detail)))
        return result

    def _reject_independently(self, attempt: _Attempt, result: Rejected, detail: str) -> Rejected:
        logger.info("%s rejected user_id=%s reason=%s", attempt.action, attempt.request.user_id, result.reason.value)
        self._record_independently(self._entry(attempt, Outcome.FAILED, self._failure_description(result, detail)))
        return result

    def _record_independently(self, entry: AuditEntry) -> None:
        try:
            with self._sessions.session() as s:
                self._audit.record(s.audit, entry)
        except Exception:
            logger.exception("independent audit transaction failed action=%s", entry.action)
