from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller role supplied by the external authenticator."""

    ADMIN = "admin"
    STAFF = "staff"


class Method(str, Enum):
    """How an attendance attempt was verified."""

    FACE = "face"
    QR = "qr"


class Direction(str, Enum):
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"


class Outcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class ConsumeResult(str, Enum):
    """Result of an atomic QR token consumption."""

    CONSUMED = "CONSUMED"
    ALREADY_USED = "ALREADY_USED"
    EXPIRED = "EXPIRED"
    NOT_FOUND = "NOT_FOUND"


class RejectReason(str, Enum):
    """Closed set of reasons a check-in/check-out can be rejected.

    Values are stable codes returned to API clients.
    """

    # input validation
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_CONFIDENCE = "INVALID_CONFIDENCE"
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"

    # identity
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_INACTIVE = "USER_INACTIVE"

    # state conflict
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"
    ALREADY_CHECKED_OUT = "ALREADY_CHECKED_OUT"
    NOT_CHECKED_IN_YET = "NOT_CHECKED_IN_YET"

    # verification
    LOW_CONFIDENCE = "LOW_CONFIDENCE"
    QR_NOT_FOUND = "QR_NOT_FOUND"
    QR_EXPIRED = "QR_EXPIRED"
    QR_ALREADY_USED = "QR_ALREADY_USED"
    QR_WRONG_USER = "QR_WRONG_USER"

    # infrastructure
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    TRANSACTION_CONFLICT = "TRANSACTION_CONFLICT"

    @property
    def retryable(self) -> bool:
        return self in {RejectReason.STORAGE_UNAVAILABLE, RejectReason.TRANSACTION_CONFLICT}


REJECTION_MESSAGES: dict[RejectReason, str] = {
    RejectReason.MISSING_FIELD: "Incomplete data",
    RejectReason.INVALID_CONFIDENCE: "Face confidence must be a number between 0 and 1",
    RejectReason.INVALID_TIMESTAMP: "Timestamp is not a valid ISO-8601 date/time",
    RejectReason.USER_NOT_FOUND: "User not found",
    RejectReason.USER_INACTIVE: "User account is inactive",
    RejectReason.ALREADY_CHECKED_IN: "You have already checked in today",
    RejectReason.ALREADY_CHECKED_OUT: "You have already checked out today",
    RejectReason.NOT_CHECKED_IN_YET: "You have not checked in today",
    RejectReason.LOW_CONFIDENCE: "Face confidence too low. Please try again",
    RejectReason.QR_NOT_FOUND: "QR code not found",
    RejectReason.QR_EXPIRED: "QR code is not valid at this time",
    RejectReason.QR_ALREADY_USED: "QR code has already been used",
    RejectReason.QR_WRONG_USER: "QR code was issued to another user",
    RejectReason.STORAGE_UNAVAILABLE: "Attendance storage is unavailable, please retry",
    RejectReason.TRANSACTION_CONFLICT: "Concurrent update detected, please retry",
}
