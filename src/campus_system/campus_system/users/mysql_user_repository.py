from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import RosterStudent, User
from .repository import UserRepository

_USER_COLUMNS = "user_id, full_name, username, password_hash, role, dept_id, is_active"


def _to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        full_name=row["full_name"],
        username=row["username"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        dept_id=row.get("dept_id"),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE username=%s", (username,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def list_students_for_class(
        self,
        *,
        dept_id: int,
        semester: Optional[int],
        section: Optional[str],
    ) -> Sequence[RosterStudent]:
        with db_cursor(self._conn_factory) as (_, cur):
            # <=> is MySQL's NULL-safe equality.
            cur.execute(
                """
                SELECT u.user_id, u.full_name, u.username, u.dept_id,
                       sp.regno, sp.semester, sp.section
                FROM users u
                JOIN student_profiles sp ON sp.user_id = u.user_id
                WHERE u.role = 'STUDENT'
                  AND u.is_active = 1
                  AND u.dept_id = %s
                  AND sp.semester <=> %s
                  AND sp.section <=> %s
                ORDER BY sp.regno ASC, u.full_name ASC
                """,
                (int(dept_id), semester, section),
            )
            return [
                RosterStudent(
                    user_id=int(r["user_id"]),
                    full_name=r["full_name"],
                    username=r["username"],
                    dept_id=r.get("dept_id"),
                    regno=r.get("regno"),
                    semester=r.get("semester"),
                    section=r.get("section"),
                )
                for r in fetchall(cur)
            ]
