from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_float
from .model import User
from .repository import UserRepository

_USER_COLUMNS = """
    user_id, full_name, username, password_hash, role, dept_id, shift_id,
    employee_code, hourly_rate, is_active
"""


def _to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        full_name=row["full_name"],
        username=row["username"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        dept_id=row.get("dept_id"),
        shift_id=row.get("shift_id"),
        employee_code=row.get("employee_code"),
        hourly_rate=to_float(row.get("hourly_rate")) or 0.0,
        is_active=bool(row.get("is_active", True)),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, where: str, value) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE {where}=%s", (value,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._get_one("user_id", int(user_id))

    def get_by_username(self, username: str) -> Optional[User]:
        return self._get_one("username", username)

    def get_by_employee_code(self, employee_code: str) -> Optional[User]:
        return self._get_one("employee_code", employee_code)

    def list_active(self, *, dept_id: Optional[int] = None) -> Sequence[User]:
        sql = f"SELECT {_USER_COLUMNS} FROM users WHERE is_active=1"
        params: tuple = ()
        if dept_id is not None:
            sql += " AND dept_id=%s"
            params = (int(dept_id),)
        sql += " ORDER BY full_name"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [_to_user(r) for r in fetchall(cur)]

    def set_hourly_rate(self, user_id: int, *, hourly_rate: float) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET hourly_rate=%s WHERE user_id=%s",
                (float(hourly_rate), int(user_id)),
            )
            return cur.rowcount > 0

    def set_employee_code(self, user_id: int, *, employee_code: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET employee_code=%s WHERE user_id=%s",
                (employee_code, int(user_id)),
            )
            return cur.rowcount > 0
