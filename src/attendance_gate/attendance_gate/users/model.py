from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    """Domain entity: external user reference.

    Owned by the identity system; the engine only reads it.
    """

    user_id: str
    full_name: str
    is_active: bool = True
