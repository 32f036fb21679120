from __future__ import annotations

from .enums import Direction, RejectReason


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    def __init__(self, message: str, *, reason: RejectReason = RejectReason.MISSING_FIELD):
        super().__init__(message)
        self.reason = reason


class AuthorizationError(DomainError):
    """Raised when a caller lacks permission for an action."""


class DuplicateDirection(DomainError):
    """Raised by the ledger when the (user, direction, date) unique key is violated."""

    def __init__(self, direction: Direction):
        super().__init__(f"duplicate {direction.value} event")
        self.direction = direction


class StorageError(Exception):
    """Base exception for infrastructure faults coming from the store."""


class StorageUnavailable(StorageError):
    """Pool exhausted, acquire timeout, or connection lost."""


class TransactionConflict(StorageError):
    """Deadlock or lock wait timeout; the whole operation may be retried."""
