from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import RejectReason


@dataclass(frozen=True)
class Decision:
    """Outcome of a verification gateway: admit, or reject with a reason."""

    admitted: bool
    reason: Optional[RejectReason] = None

    @classmethod
    def admit(cls) -> "Decision":
        return cls(admitted=True)

    @classmethod
    def reject(cls, reason: RejectReason) -> "Decision":
        return cls(admitted=False, reason=reason)
