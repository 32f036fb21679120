from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.attendance_gate.attendance_gate.attendance.model import Admitted, AttendanceRequest, Origin, Rejected
from src.attendance_gate.attendance_gate.attendance.service import AttendanceService
from src.attendance_gate.attendance_gate.core.enums import Direction, Method, Outcome, RejectReason
from src.attendance_gate.attendance_gate.core.exceptions import TransactionConflict
from src.attendance_gate.attendance_gate.verification.qr_gateway import QRGateway
from tests.fakes import InMemoryStore

T0 = datetime(2025, 3, 3, 8, 0)


def _face(user_id="u1", confidence=0.9, **kw) -> AttendanceRequest:
    return AttendanceRequest(user_id=user_id, method=Method.FACE, confidence=confidence, **kw)


def _qr(code, user_id="u1", **kw) -> AttendanceRequest:
    return AttendanceRequest(user_id=user_id, method=Method.QR, qr_code=code, **kw)


def _engine(store: InMemoryStore, **kw) -> AttendanceService:
    return AttendanceService(store, **kw)


def _store() -> InMemoryStore:
    store = InMemoryStore()
    store.add_user("u1", full_name="Alice")
    return store


def test_low_confidence_is_rejected_and_audited_without_event():
    store = _store()

    result = _engine(store).request_check_in(_face(confidence=0.80), now=T0)

    assert result == Rejected.of(RejectReason.LOW_CONFIDENCE)
    assert store.events == []
    assert len(store.audit) == 1
    entry = store.audit[0]
    assert entry.outcome == Outcome.FAILED
    assert entry.action == "CHECKIN_FACE"
    assert entry.user_id == "u1"
    assert entry.description.startswith("LOW_CONFIDENCE")


def test_face_check_in_then_check_out_same_day():
    store = _store()
    engine = _engine(store)

    first = engine.request_check_in(_face(confidence=0.90), now=T0)
    second = engine.request_check_out(_face(confidence=0.92), now=T0 + timedelta(hours=9))

    assert isinstance(first, Admitted)
    assert isinstance(second, Admitted)
    assert [e.direction for e in store.events] == [Direction.CHECK_IN, Direction.CHECK_OUT]
    assert first.event.face_confidence == 0.90
    assert second.event.work_date == T0.date()
    assert [a.outcome for a in store.audit] == [Outcome.SUCCESS, Outcome.SUCCESS]
    assert store.audit[0].description == "Check-in with face recognition (confidence: 0.9)"


def test_admitted_event_carries_origin_and_default_location():
    store = _store()
    origin = Origin(ip_address="10.0.0.7", device_info="Kiosk/1.0")

    result = _engine(store, default_location="HQ").request_check_in(_face(origin=origin), now=T0)

    assert result.event.location == "HQ"
    assert result.event.ip_address == "10.0.0.7"
    assert result.event.device_info == "Kiosk/1.0"
    assert store.audit[0].ip_address == "10.0.0.7"
    assert store.audit[0].user_agent == "Kiosk/1.0"


def test_client_timestamp_sets_event_time_but_not_work_date():
    store = _store()

    result = _engine(store).request_check_in(_face(timestamp="2025-03-03T07:58:00"), now=T0)

    assert result.event.event_time == datetime(2025, 3, 3, 7, 58)
    assert result.event.work_date == T0.date()
    assert result.event.created_at == T0


def test_second_check_in_same_day_is_rejected():
    store = _store()
    engine = _engine(store)

    first = engine.request_check_in(_face(), now=T0)
    second = engine.request_check_in(_face(), now=T0 + timedelta(minutes=1))

    assert isinstance(first, Admitted)
    assert second == Rejected.of(RejectReason.ALREADY_CHECKED_IN)
    assert len(store.events_for("u1")) == 1


def test_check_in_allowed_again_next_day():
    store = _store()
    engine = _engine(store)

    engine.request_check_in(_face(), now=T0)
    result = engine.request_check_in(_face(), now=T0 + timedelta(days=1))

    assert isinstance(result, Admitted)


def test_check_out_requires_check_in():
    store = _store()

    result = _engine(store).request_check_out(_face(), now=T0)

    assert result.reason == RejectReason.NOT_CHECKED_IN_YET
    assert store.events == []


def test_second_check_out_is_rejected():
    store = _store()
    engine = _engine(store)
    engine.request_check_in(_face(), now=T0)
    engine.request_check_out(_face(), now=T0 + timedelta(hours=8))

    result = engine.request_check_out(_face(), now=T0 + timedelta(hours=9))

    assert result.reason == RejectReason.ALREADY_CHECKED_OUT


def test_qr_check_in_consumes_token():
    store = _store()
    store.add_token("QR-ABCDEFGHIJKL", valid_from=T0, valid_until=T0 + timedelta(hours=8))
    now = T0 + timedelta(hours=1)

    result = _engine(store).request_check_in(_qr("QR-ABCDEFGHIJKL"), now=now)

    assert isinstance(result, Admitted)
    assert result.event.qr_code == "QR-ABCDEFGHIJKL"
    token = store.tokens["QR-ABCDEFGHIJKL"]
    assert token.is_used and token.used_at == now and token.usage_count == 1
    assert store.audit[0].action == "CHECKIN_QR"
    assert store.audit[0].description == "Check-in with QR Code: QR-ABCDEFG..."


def test_qr_token_outside_window_is_expired():
    store = _store()
    store.add_token("QR-1", valid_from=T0, valid_until=T0 + timedelta(hours=8))

    result = _engine(store).request_check_in(_qr("QR-1"), now=T0 + timedelta(hours=9))

    assert result == Rejected.of(RejectReason.QR_EXPIRED)
    assert not store.tokens["QR-1"].is_used
    assert store.events == []


def test_used_qr_token_cannot_be_redeemed_again():
    store = _store()
    store.add_user("u2")
    store.add_token("QR-1", valid_from=T0, valid_until=T0 + timedelta(hours=8))
    engine = _engine(store)
    engine.request_check_in(_qr("QR-1", user_id="u1"), now=T0)

    result = engine.request_check_in(_qr("QR-1", user_id="u2"), now=T0 + timedelta(minutes=5))

    assert result.reason == RejectReason.QR_ALREADY_USED
    assert store.events_for("u2") == []
    assert store.tokens["QR-1"].usage_count == 1


def test_unknown_qr_token():
    result = _engine(_store()).request_check_in(_qr("NOPE"), now=T0)

    assert result.reason == RejectReason.QR_NOT_FOUND


def test_qr_token_bound_to_another_user():
    store = _store()
    store.add_token("QR-1", valid_from=T0, valid_until=T0 + timedelta(hours=8), bound_user_id="u9")

    result = _engine(store, qr_gateway=QRGateway()).request_check_in(_qr("QR-1"), now=T0)

    assert result.reason == RejectReason.QR_WRONG_USER
    assert not store.tokens["QR-1"].is_used


def test_unknown_user_fails_closed_with_null_audit_user():
    store = _store()

    result = _engine(store).request_check_in(_face(user_id="ghost"), now=T0)

    assert result.reason == RejectReason.USER_NOT_FOUND
    assert store.events == []
    assert len(store.audit) == 1
    assert store.audit[0].user_id is None
    assert "ghost" in store.audit[0].description


def test_inactive_user_is_reported_as_not_found_by_default():
    store = _store()
    store.add_user("gone", is_active=False)

    result = _engine(store).request_check_in(_face(user_id="gone"), now=T0)

    assert result.reason == RejectReason.USER_NOT_FOUND
    assert store.events == []


def test_inactive_user_reason_can_be_revealed():
    store = _store()
    store.add_user("gone", is_active=False)

    result = _engine(store, reveal_inactive_users=True).request_check_in(_face(user_id="gone"), now=T0)

    assert result.reason == RejectReason.USER_INACTIVE


@pytest.mark.parametrize(
    "request_, reason",
    [
        (AttendanceRequest(user_id=None, method=Method.FACE, confidence=0.9), RejectReason.MISSING_FIELD),
        (AttendanceRequest(user_id="  ", method=Method.FACE, confidence=0.9), RejectReason.MISSING_FIELD),
        (AttendanceRequest(user_id="u1", method=Method.FACE), RejectReason.MISSING_FIELD),
        (AttendanceRequest(user_id="u1", method=Method.FACE, confidence="high"), RejectReason.INVALID_CONFIDENCE),
        (AttendanceRequest(user_id="u1", method=Method.FACE, confidence=1.5), RejectReason.INVALID_CONFIDENCE),
        (AttendanceRequest(user_id="u1", method=Method.QR), RejectReason.MISSING_FIELD),
        (
            AttendanceRequest(user_id="u1", method=Method.FACE, confidence=0.9, timestamp="yesterday"),
            RejectReason.INVALID_TIMESTAMP,
        ),
    ],
)
def test_invalid_input_is_rejected_before_any_transaction(request_, reason):
    store = _store()

    result = _engine(store).request_check_in(request_, now=T0)

    assert result.reason == reason
    assert store.events == []
    # only the independent audit session was opened
    assert store.sessions_opened == 1
    assert len(store.audit) == 1
    assert store.audit[0].outcome == Outcome.FAILED


def test_numeric_string_confidence_is_accepted():
    result = _engine(_store()).request_check_in(_face(confidence="0.93"), now=T0)

    assert isinstance(result, Admitted)
    assert result.event.face_confidence == 0.93


def test_storage_unavailable_is_a_retryable_rejection():
    store = _store()
    store.unavailable = True

    result = _engine(store).request_check_in(_face(), now=T0)

    assert result.reason == RejectReason.STORAGE_UNAVAILABLE
    assert result.retryable


def test_transaction_conflict_rolls_back_and_audits_independently():
    store = _store()
    store.insert_error = TransactionConflict("Deadlock found when trying to get lock")

    result = _engine(store).request_check_in(_face(), now=T0)

    assert result.reason == RejectReason.TRANSACTION_CONFLICT
    assert result.retryable
    assert store.events == []
    assert store.rollbacks == 1
    assert len(store.audit) == 1
    assert store.audit[0].description.startswith("TRANSACTION_CONFLICT")


def test_unexpected_error_is_audited_then_raised():
    store = _store()
    store.insert_error = RuntimeError("disk full")

    with pytest.raises(RuntimeError, match="disk full"):
        _engine(store).request_check_in(_face(), now=T0)

    assert store.events == []
    assert len(store.audit) == 1
    assert store.audit[0].outcome == Outcome.FAILED
    assert store.audit[0].description == "Error: disk full"


def test_audit_failure_does_not_undo_admission(caplog):
    store = _store()
    store.fail_audit = True

    result = _engine(store).request_check_in(_face(), now=T0)

    assert isinstance(result, Admitted)
    assert len(store.events) == 1
    assert store.commits == 1
    assert "audit write failed" in caplog.text


def test_every_call_leaves_exactly_one_matching_audit_entry():
    store = _store()
    store.add_token("QR-1", valid_from=T0, valid_until=T0 + timedelta(hours=8))
    engine = _engine(store)

    calls = [
        lambda: engine.request_check_out(_face(), now=T0),
        lambda: engine.request_check_in(_face(confidence=0.5), now=T0),
        lambda: engine.request_check_in(_qr("QR-1"), now=T0 + timedelta(minutes=1)),
        lambda: engine.request_check_in(_face(), now=T0 + timedelta(minutes=2)),
        lambda: engine.request_check_out(_qr("QR-1"), now=T0 + timedelta(hours=8)),
        lambda: engine.request_check_out(_face(), now=T0 + timedelta(hours=8)),
        lambda: engine.request_check_in(_face(user_id=""), now=T0),
    ]
    for i, call in enumerate(calls, start=1):
        result = call()
        assert len(store.audit) == i
        expected = Outcome.SUCCESS if isinstance(result, Admitted) else Outcome.FAILED
        assert store.audit[-1].outcome == expected


def test_deadlock_on_audit_write_is_not_reported_as_admitted():
    store = _store()
    store.audit_error = TransactionConflict("Deadlock found when trying to get lock")

    result = _engine(store).request_check_in(_face(), now=T0)

    assert result.reason == RejectReason.TRANSACTION_CONFLICT
    assert store.events == []
    assert store.rollbacks == 1
    assert len(store.audit) == 1
    assert store.audit[0].outcome == Outcome.FAILED
