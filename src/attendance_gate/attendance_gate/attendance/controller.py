from __future__ import annotations

import logging
from functools import wraps
from typing import Optional

from flask import Flask, jsonify, request, send_file, session

from ..common.datetime_utils import format_duration, parse_iso_date
from ..container import Container
from ..core.constants import UNKNOWN_DEVICE
from ..core.enums import Direction, Method, RejectReason, Role
from ..core.exceptions import AuthorizationError, StorageError, ValidationError
from ..qr.rendering import render_qr_png
from .model import Admitted, AttendanceRequest, AttendanceResult, DailyAttendanceSummary, Origin

logger = logging.getLogger(__name__)

_STATUS_BY_REASON = {
    RejectReason.USER_NOT_FOUND: 404,
    RejectReason.USER_INACTIVE: 404,
    RejectReason.STORAGE_UNAVAILABLE: 503,
    RejectReason.TRANSACTION_CONFLICT: 503,
}


def _fail(message: str, status: int, *, code: Optional[str] = None):
    body = {"success": False, "message": message}
    if code:
        body["code"] = code
    return jsonify(body), status


def _summary_to_dict(summary: DailyAttendanceSummary) -> dict:
    return {
        "date": summary.work_date.isoformat(),
        "check_in_time": summary.check_in_time.isoformat() if summary.check_in_time else None,
        "check_out_time": summary.check_out_time.isoformat() if summary.check_out_time else None,
        "check_in_type": summary.check_in_method.value if summary.check_in_method else None,
        "check_out_type": summary.check_out_method.value if summary.check_out_method else None,
        "duration": summary.work_seconds,
        "face_confidence_in": summary.face_confidence_in,
        "face_confidence_out": summary.face_confidence_out,
    }


def register(app: Flask, container: Container) -> None:
    """JSON endpoints over the attendance engine.

    The external authenticator is expected to have put ``user_id`` and
    ``role`` into the session already.
    """

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return _fail("Authentication required", 401)
            try:
                return view(*args, **kwargs)
            except AuthorizationError as e:
                return _fail(str(e), 403)
            except ValidationError as e:
                return _fail(str(e), 400, code=e.reason.value)
            except StorageError:
                logger.warning("storage unavailable on %s", request.path, exc_info=True)
                return _fail("Attendance storage is unavailable, please retry", 503)
            except Exception:
                logger.exception("unhandled error on %s", request.path)
                return _fail("Internal error while processing attendance", 500)

        return wrapper

    def admin_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if session.get("role") != Role.ADMIN.value:
                return _fail("You do not have access to this resource", 403)
            return view(*args, **kwargs)

        return login_required(wrapper)

    def _caller_id() -> str:
        return str(session["user_id"])

    def _target_user(requested: Optional[str]) -> str:
        """Callers act on themselves; only admins may act on someone else."""
        caller = _caller_id()
        target = str(requested).strip() if requested not in (None, "") else caller
        if target != caller and session.get("role") != Role.ADMIN.value:
            raise AuthorizationError("You do not have access to this user's attendance")
        return target

    def _origin() -> Origin:
        return Origin(
            ip_address=request.headers.get("X-Forwarded-For", request.remote_addr or "").split(",")[0].strip() or None,
            device_info=request.headers.get("User-Agent") or UNKNOWN_DEVICE,
        )

    def _respond(result: AttendanceResult, direction: Direction):
        if isinstance(result, Admitted):
            verb = "Check-in" if direction == Direction.CHECK_IN else "Check-out"
            return jsonify({"success": True, "message": f"{verb} successful", "data": result.event.to_dict()}), 200
        status = _STATUS_BY_REASON.get(result.reason, 400)
        body = {"success": False, "code": result.reason.value, "message": result.message, "retryable": result.retryable}
        return jsonify(body), status

    def _submit(direction: Direction, method: Method, *, qr_code: Optional[str] = None, data: Optional[dict] = None):
        data = data if data is not None else (request.get_json(silent=True) or {})
        req = AttendanceRequest(
            user_id=_target_user(data.get("user_id")),
            method=method,
            confidence=data.get("confidence"),
            qr_code=qr_code if qr_code is not None else data.get("qr_code"),
            timestamp=data.get("timestamp"),
            location=data.get("location"),
            origin=_origin(),
        )
        engine = container.attendance_service
        result = engine.request_check_in(req) if direction == Direction.CHECK_IN else engine.request_check_out(req)
        return _respond(result, direction)

    @app.route("/api/attendance/checkin-face", methods=["POST"], endpoint="api_checkin_face")
    @login_required
    def api_checkin_face():
        return _submit(Direction.CHECK_IN, Method.FACE)

    @app.route("/api/attendance/checkout-face", methods=["POST"], endpoint="api_checkout_face")
    @login_required
    def api_checkout_face():
        return _submit(Direction.CHECK_OUT, Method.FACE)

    @app.route("/api/attendance/checkin-qr", methods=["POST"], endpoint="api_checkin_qr")
    @login_required
    def api_checkin_qr():
        return _submit(Direction.CHECK_IN, Method.QR)

    @app.route("/api/attendance/checkout-qr", methods=["POST"], endpoint="api_checkout_qr")
    @login_required
    def api_checkout_qr():
        return _submit(Direction.CHECK_OUT, Method.QR)

    @app.route("/api/attendance/qr/image", methods=["POST"], endpoint="api_qr_image")
    @login_required
    def api_qr_image():
        """Decode a QR code from an uploaded photo, then run the QR flow."""
        if "image" not in request.files:
            return _fail("Image file is required", 400, code=RejectReason.MISSING_FIELD.value)

        from ..qr.decoding import decode_qr_image

        try:
            direction = Direction(request.form.get("direction", Direction.CHECK_IN.value))
        except ValueError:
            return _fail("direction must be check_in or check_out", 400)

        code = decode_qr_image(request.files["image"].stream)
        return _submit(direction, Method.QR, qr_code=code, data=request.form.to_dict())

    @app.route("/api/attendance/history/<user_id>", methods=["GET"], endpoint="api_history")
    @login_required
    def api_history(user_id: str):
        user_id = _target_user(user_id)
        try:
            start = parse_iso_date(request.args["start_date"]) if request.args.get("start_date") else None
            end = parse_iso_date(request.args["end_date"]) if request.args.get("end_date") else None
        except ValueError:
            return _fail("Dates must be YYYY-MM-DD", 400, code=RejectReason.INVALID_TIMESTAMP.value)

        events = container.report_service.history(user_id, start_date=start, end_date=end)
        return jsonify({"success": True, "message": "Attendance history", "data": [e.to_dict() for e in events]}), 200

    @app.route("/api/attendance/today/<user_id>", methods=["GET"], endpoint="api_today")
    @login_required
    def api_today(user_id: str):
        summary = container.report_service.today(_target_user(user_id))
        if summary is None:
            return jsonify({"success": True, "message": "No attendance yet today", "data": None}), 200
        return jsonify({"success": True, "message": "Today's attendance", "data": _summary_to_dict(summary)}), 200

    @app.route("/api/attendance/statistics/<user_id>", methods=["GET"], endpoint="api_statistics")
    @login_required
    def api_statistics(user_id: str):
        user_id = _target_user(user_id)
        try:
            month = int(request.args["month"]) if request.args.get("month") else None
            year = int(request.args["year"]) if request.args.get("year") else None
        except ValueError:
            return _fail("month and year must be integers", 400)

        stats = container.report_service.monthly_statistics(user_id, month=month, year=year)
        return jsonify(
            {
                "success": True,
                "message": "Attendance statistics",
                "data": {
                    "total_check_ins": stats.total_check_ins,
                    "total_check_outs": stats.total_check_outs,
                    "total_work_hours": stats.total_work_hours,
                    "average_daily_hours": stats.average_daily_hours,
                    "daily_summaries": [
                        {
                            "date": d.work_date.isoformat(),
                            "check_ins": 1 if d.check_in_time else 0,
                            "check_outs": 1 if d.check_out_time else 0,
                            "duration": format_duration(d.work_seconds),
                        }
                        for d in stats.daily
                    ],
                    "month": stats.month,
                    "year": stats.year,
                },
            }
        ), 200

    @app.route("/api/attendance/validate-qr", methods=["POST"], endpoint="api_validate_qr")
    @login_required
    def api_validate_qr():
        data = request.get_json(silent=True) or {}
        result = container.qr_service.validate(data.get("qr_code"), user_id=_caller_id())
        if result.reason == RejectReason.QR_NOT_FOUND:
            return _fail(result.message, 400, code=result.reason.value)

        return jsonify(
            {
                "success": result.is_valid,
                "message": result.message,
                "code": result.reason.value if result.reason else None,
                "data": {
                    "is_valid": result.is_valid,
                    "user_id": result.bound_user_id,
                    "valid_for_date": result.valid_for_date.isoformat() if result.valid_for_date else None,
                    "expiry_time": result.expiry_time.isoformat() if result.expiry_time else None,
                },
            }
        ), 200

    @app.route("/admin/qr/<code>/image", methods=["GET"], endpoint="admin_qr_image")
    @admin_required
    def admin_qr_image(code: str):
        """Printable PNG of an issued token."""
        if container.qr_service.get(code) is None:
            return _fail("QR code not found", 404, code=RejectReason.QR_NOT_FOUND.value)
        return send_file(render_qr_png(code), mimetype="image/png")
