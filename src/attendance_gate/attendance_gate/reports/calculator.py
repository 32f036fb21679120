from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional


class WorkDurationCalculator(ABC):
    """Calculator interface (Strategy Pattern for worked time)."""

    @abstractmethod
    def worked_seconds(self, check_in: Optional[datetime], check_out: Optional[datetime]) -> int:
        raise NotImplementedError


class StandardWorkDurationCalculator(WorkDurationCalculator):
    """Standard rule: out - in, not below 0, zero while still checked in."""

    def worked_seconds(self, check_in: Optional[datetime], check_out: Optional[datetime]) -> int:
        if not check_in or not check_out:
            return 0
        return max(int((check_out - check_in).total_seconds()), 0)
