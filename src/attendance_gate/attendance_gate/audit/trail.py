from __future__ import annotations

import logging

from ..core.exceptions import StorageError
from .model import AuditEntry
from .repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditTrail:
    """Best-effort writer for audit entries.

    A failed write is reported on the operational log and never changes the
    outcome of the transition being audited. Storage errors are the exception:
    a deadlock or a dropped connection has already discarded the surrounding
    transaction, so they propagate and the transition is reported as failed.
    """

    def record(self, repository: AuditRepository, entry: AuditEntry) -> bool:
        try:
            repository.insert(entry)
            return True
        except StorageError:
            raise
        except Exception:
            logger.exception(
                "audit write failed action=%s outcome=%s user_id=%s",
                entry.action,
                entry.outcome.value,
                entry.user_id,
            )
            return False
