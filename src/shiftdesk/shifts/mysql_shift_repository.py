from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

from ..common.datetime_utils import as_utc, to_db_datetime
from ..core.enums import ApprovalStatus, ShiftStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import NewShift, Shift
from .repository import ShiftRepository

_COLUMNS = """
    shift_id, organization_id, created_by, name, assigned_to, is_open,
    shift_date, start_time, end_time, timezone, role, location,
    status, approval_status, clock_in_time, clock_out_time, worked_hours,
    notes, reminder_sent, version, created_at, updated_at
"""


def _to_shift(r: dict[str, Any]) -> Shift:
    return Shift(
        shift_id=int(r["shift_id"]),
        organization_id=int(r["organization_id"]),
        created_by=int(r["created_by"]),
        name=r["name"],
        assigned_to=int(r["assigned_to"]) if r.get("assigned_to") is not None else None,
        is_open=bool(r["is_open"]),
        date=r["shift_date"],
        start_time=str(r["start_time"])[:5],
        end_time=str(r["end_time"])[:5],
        timezone=r.get("timezone"),
        role=r.get("role"),
        location=r.get("location"),
        status=ShiftStatus(r["status"]),
        approval_status=ApprovalStatus(r["approval_status"]),
        clock_in_time=as_utc(r.get("clock_in_time")),
        clock_out_time=as_utc(r.get("clock_out_time")),
        worked_hours=float(r.get("worked_hours") or 0),
        notes=r.get("notes"),
        reminder_sent=bool(r.get("reminder_sent")),
        version=int(r["version"]),
        created_at=as_utc(r.get("created_at")),
        updated_at=as_utc(r.get("updated_at")),
    )


class MySQLShiftRepository(ShiftRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, new: NewShift) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO shifts(
                    organization_id, created_by, name, assigned_to, is_open,
                    shift_date, start_time, end_time, timezone, role, location,
                    status, approval_status, notes
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(new.organization_id),
                    int(new.created_by),
                    new.name,
                    new.assigned_to,
                    int(new.is_open),
                    new.date,
                    new.start_time,
                    new.end_time,
                    new.timezone,
                    new.role,
                    new.location,
                    new.status.value,
                    ApprovalStatus.PENDING.value,
                    new.notes,
                ),
            )
            return int(cur.lastrowid)

    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM shifts WHERE shift_id=%s", (int(shift_id),))
            r = fetchone(cur)
            return _to_shift(r) if r else None

    def update(self, shift: Shift, *, expected_version: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE shifts
                SET name=%s, assigned_to=%s, is_open=%s, shift_date=%s,
                    start_time=%s, end_time=%s, timezone=%s, role=%s, location=%s,
                    status=%s, approval_status=%s, clock_in_time=%s, clock_out_time=%s,
                    worked_hours=%s, notes=%s, reminder_sent=%s, version=version+1
                WHERE shift_id=%s AND version=%s
                """,
                (
                    shift.name,
                    shift.assigned_to,
                    int(shift.is_open),
                    shift.date,
                    shift.start_time,
                    shift.end_time,
                    shift.timezone,
                    shift.role,
                    shift.location,
                    shift.status.value,
                    shift.approval_status.value,
                    to_db_datetime(shift.clock_in_time),
                    to_db_datetime(shift.clock_out_time),
                    shift.worked_hours,
                    shift.notes,
                    int(shift.reminder_sent),
                    int(shift.shift_id),
                    int(expected_version),
                ),
            )
            return cur.rowcount > 0

    def delete(self, shift_id: int, *, expected_version: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM shifts WHERE shift_id=%s AND version=%s",
                (int(shift_id), int(expected_version)),
            )
            return cur.rowcount > 0

    def _select(self, where: str, params: tuple, *, order: str = "shift_date ASC, start_time ASC", limit: Optional[int] = None):
        sql = f"SELECT {_COLUMNS} FROM shifts WHERE {where} ORDER BY {order}"
        if limit is not None:
            sql += " LIMIT %s"
            params = params + (int(limit),)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [_to_shift(r) for r in fetchall(cur)]

    def list_for_organization(
        self,
        organization_id: int,
        *,
        status: Optional[ShiftStatus] = None,
        limit: int = 200,
    ) -> Sequence[Shift]:
        clauses = ["organization_id=%s"]
        params: list[object] = [int(organization_id)]
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        return self._select(" AND ".join(clauses), tuple(params), order="shift_date DESC, start_time DESC", limit=limit)

    def list_for_assignee(self, *, user_id: int, organization_id: int) -> Sequence[Shift]:
        return self._select("assigned_to=%s AND organization_id=%s", (int(user_id), int(organization_id)))

    def list_open(self, organization_id: int) -> Sequence[Shift]:
        return self._select(
            "organization_id=%s AND is_open=1 AND status=%s",
            (int(organization_id), ShiftStatus.OPEN.value),
        )

    def list_completed(
        self,
        *,
        organization_id: int,
        start: date,
        end: date,
        staff_id: Optional[int] = None,
    ) -> Sequence[Shift]:
        clauses = ["organization_id=%s", "status=%s", "shift_date BETWEEN %s AND %s"]
        params: list[object] = [int(organization_id), ShiftStatus.COMPLETED.value, start, end]
        if staff_id is not None:
            clauses.append("assigned_to=%s")
            params.append(int(staff_id))
        return self._select(" AND ".join(clauses), tuple(params))

    def list_reminder_candidates(self, *, start: date, end: date) -> Sequence[Shift]:
        return self._select(
            "status=%s AND reminder_sent=0 AND assigned_to IS NOT NULL AND shift_date BETWEEN %s AND %s",
            (ShiftStatus.ASSIGNED.value, start, end),
        )

    def mark_reminder_sent(self, shift_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE shifts SET reminder_sent=1 WHERE shift_id=%s AND reminder_sent=0",
                (int(shift_id),),
            )
            return cur.rowcount > 0
