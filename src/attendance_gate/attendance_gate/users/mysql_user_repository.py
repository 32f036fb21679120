from __future__ import annotations

from typing import Optional

from ..database.mysql_base import fetchone
from .model import User
from .repository import UserRepository


class MySQLUserRepository(UserRepository):
    def __init__(self, cur):
        self._cur = cur

    def get_by_id(self, user_id: str) -> Optional[User]:
        self._cur.execute(
            """
            SELECT user_id, full_name, is_active
            FROM users
            WHERE user_id=%s
            """,
            (str(user_id),),
        )
        row = fetchone(self._cur)
        if not row:
            return None
        return User(
            user_id=str(row["user_id"]),
            full_name=row["full_name"],
            is_active=bool(row.get("is_active", True)),
        )
