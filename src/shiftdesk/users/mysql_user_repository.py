from __future__ import annotations

from typing import Any, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Member
from .repository import MemberRepository

_COLUMNS = "user_id, name, email, role, organization_id, manager_id"


def _to_member(row: dict[str, Any]) -> Member:
    return Member(
        user_id=int(row["user_id"]),
        name=row["name"],
        email=row["email"],
        role=Role(row["role"]),
        organization_id=int(row["organization_id"]),
        manager_id=int(row["manager_id"]) if row.get("manager_id") is not None else None,
    )


class MySQLMemberRepository(MemberRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM members WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _to_member(row) if row else None

    def get_by_email(self, *, organization_id: int, email: str) -> Optional[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM members
                WHERE organization_id=%s AND LOWER(email)=LOWER(%s)
                """,
                (int(organization_id), email.strip()),
            )
            row = fetchone(cur)
            return _to_member(row) if row else None

    def list_staff_for_manager(self, manager_id: int) -> Sequence[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM members
                WHERE manager_id=%s AND role=%s
                ORDER BY name
                """,
                (int(manager_id), Role.STAFF.value),
            )
            return [_to_member(r) for r in fetchall(cur)]
