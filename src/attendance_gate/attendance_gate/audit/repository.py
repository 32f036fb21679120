from __future__ import annotations

from typing import Protocol

from .model import AuditEntry


class AuditRepository(Protocol):
    def insert(self, entry: AuditEntry) -> None:
        raise NotImplementedError
