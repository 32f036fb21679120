from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from ..core.enums import ConsumeResult
from .model import QRToken


class QRTokenStore(Protocol):
    def get_by_code(self, code: str) -> Optional[QRToken]:
        raise NotImplementedError

    def try_consume(self, code: str, now: datetime) -> ConsumeResult:
        """Atomically flip ``is_used`` from false to true.

        Must be a single conditional write so that, among concurrent callers,
        exactly one observes CONSUMED.
        """

        raise NotImplementedError
