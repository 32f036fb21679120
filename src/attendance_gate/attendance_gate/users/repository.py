from __future__ import annotations

from typing import Optional, Protocol

from .model import User


class UserRepository(Protocol):
    """Read-only lookup of the externally owned user reference."""

    def get_by_id(self, user_id: str) -> Optional[User]:
        raise NotImplementedError
