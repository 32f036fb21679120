from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Direction, Method, Outcome


@dataclass(frozen=True)
class AuditEntry:
    """Write-once record of one admission decision."""

    action: str
    description: str
    outcome: Outcome
    created_at: datetime
    user_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def action_tag(direction: Direction, method: Method) -> str:
    """CHECKIN_FACE, CHECKOUT_QR, ..."""
    verb = "CHECKIN" if direction == Direction.CHECK_IN else "CHECKOUT"
    return f"{verb}_{method.value.upper()}"
