from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

from src.attendance_gate.attendance_gate.attendance.model import Admitted, AttendanceRequest
from src.attendance_gate.attendance_gate.attendance.service import AttendanceService
from src.attendance_gate.attendance_gate.core.enums import Direction, Method, Outcome, RejectReason
from tests.fakes import InMemoryStore

T0 = datetime(2025, 3, 3, 8, 0)


def _race(store: InMemoryStore, checkpoint: str, calls):
    """Run ``calls`` in parallel, holding every thread at ``checkpoint`` until all got there."""
    barrier = threading.Barrier(len(calls), timeout=5)

    def on_read(what: str) -> None:
        if what == checkpoint:
            barrier.wait()

    store.on_read = on_read
    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        futures = [pool.submit(call) for call in calls]
        return [f.result(timeout=10) for f in futures]


def test_simultaneous_check_ins_admit_exactly_one():
    store = InMemoryStore()
    store.add_user("u1")
    engine = AttendanceService(store)
    req = AttendanceRequest(user_id="u1", method=Method.FACE, confidence=0.95)

    results = _race(store, "ledger", [lambda: engine.request_check_in(req, now=T0)] * 2)

    admitted = [r for r in results if isinstance(r, Admitted)]
    rejected = [r for r in results if not isinstance(r, Admitted)]
    assert len(admitted) == 1
    assert [r.reason for r in rejected] == [RejectReason.ALREADY_CHECKED_IN]
    assert len([e for e in store.events if e.direction == Direction.CHECK_IN]) == 1
    assert sorted(a.outcome.value for a in store.audit) == [Outcome.FAILED.value, Outcome.SUCCESS.value]


def test_simultaneous_redemptions_of_one_token_consume_it_once():
    store = InMemoryStore()
    store.add_user("u1")
    store.add_user("u2")
    store.add_token("QR-SHARED", valid_from=T0, valid_until=T0 + timedelta(hours=8))
    engine = AttendanceService(store)
    now = T0 + timedelta(minutes=10)

    results = _race(
        store,
        "token",
        [
            lambda: engine.request_check_in(AttendanceRequest(user_id="u1", method=Method.QR, qr_code="QR-SHARED"), now=now),
            lambda: engine.request_check_in(AttendanceRequest(user_id="u2", method=Method.QR, qr_code="QR-SHARED"), now=now),
        ],
    )

    admitted = [r for r in results if isinstance(r, Admitted)]
    rejected = [r for r in results if not isinstance(r, Admitted)]
    assert len(admitted) == 1
    assert [r.reason for r in rejected] == [RejectReason.QR_ALREADY_USED]

    # the loser's event was rolled back with its transaction
    assert [e.user_id for e in store.events] == [admitted[0].event.user_id]
    assert store.tokens["QR-SHARED"].usage_count == 1
    assert store.rollbacks == 1
    assert len(store.audit) == 2


def test_simultaneous_check_outs_admit_exactly_one():
    store = InMemoryStore()
    store.add_user("u1")
    engine = AttendanceService(store)
    req = AttendanceRequest(user_id="u1", method=Method.FACE, confidence=0.95)
    assert isinstance(engine.request_check_in(req, now=T0), Admitted)
    leave = T0 + timedelta(hours=9)

    results = _race(store, "ledger", [lambda: engine.request_check_out(req, now=leave)] * 2)

    admitted = [r for r in results if isinstance(r, Admitted)]
    rejected = [r for r in results if not isinstance(r, Admitted)]
    assert len(admitted) == 1
    assert [r.reason for r in rejected] == [RejectReason.ALREADY_CHECKED_OUT]
    assert len([e for e in store.events if e.direction == Direction.CHECK_OUT]) == 1
    assert len(store.audit) == 3
