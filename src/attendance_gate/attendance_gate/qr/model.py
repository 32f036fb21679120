from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class QRToken:
    """Domain entity: single-use QR credential (issued externally)."""

    code: str
    valid_from: datetime
    valid_until: datetime
    bound_user_id: Optional[str] = None
    is_used: bool = False
    used_at: Optional[datetime] = None
    usage_count: int = 0

    def is_valid_at(self, now: datetime) -> bool:
        return self.valid_from <= now < self.valid_until
