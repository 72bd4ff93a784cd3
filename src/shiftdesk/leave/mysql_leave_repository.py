from __future__ import annotations

import json
from datetime import date
from typing import Any, Optional, Sequence

from ..common.datetime_utils import as_utc, to_db_datetime
from ..core.enums import LeaveStatus, LeaveType
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import LeaveBalance, LeaveDecision, LeaveRequest, NewLeaveRequest
from .repository import LeaveRepository

_REQUEST_COLUMNS = """
    request_id, staff_id, leave_type, start_date, end_date, days_requested,
    reason, attachments, status, manager_comments, reviewed_by, reviewed_at,
    modified_start_date, modified_end_date, submitted_at
"""

_BALANCE_COLUMNS = "staff_id, year, total_annual_leave, used_annual_leave, carry_over"


def _to_balance(r: dict[str, Any]) -> LeaveBalance:
    return LeaveBalance(
        staff_id=int(r["staff_id"]),
        year=int(r["year"]),
        total_annual_leave=float(r["total_annual_leave"]),
        used_annual_leave=float(r["used_annual_leave"]),
        carry_over=float(r["carry_over"]),
    )


def _load_attachments(raw) -> tuple[str, ...]:
    if not raw:
        return ()
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        raw = json.loads(raw)
    return tuple(str(a) for a in raw)


def _to_request(r: dict[str, Any]) -> LeaveRequest:
    return LeaveRequest(
        request_id=int(r["request_id"]),
        staff_id=int(r["staff_id"]),
        leave_type=LeaveType(r["leave_type"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        days_requested=int(r["days_requested"]),
        reason=r["reason"],
        attachments=_load_attachments(r.get("attachments")),
        status=LeaveStatus(r["status"]),
        manager_comments=r.get("manager_comments"),
        reviewed_by=int(r["reviewed_by"]) if r.get("reviewed_by") is not None else None,
        reviewed_at=as_utc(r.get("reviewed_at")),
        modified_start_date=r.get("modified_start_date"),
        modified_end_date=r.get("modified_end_date"),
        submitted_at=as_utc(r["submitted_at"]),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # ---- balances -------------------------------------------------------

    def get_balance(self, staff_id: int, year: int) -> Optional[LeaveBalance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_BALANCE_COLUMNS} FROM leave_balances WHERE staff_id=%s AND year=%s",
                (int(staff_id), int(year)),
            )
            r = fetchone(cur)
            return _to_balance(r) if r else None

    def init_balance(self, staff_id: int, year: int, *, total_annual_leave: float) -> LeaveBalance:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO leave_balances(staff_id, year, total_annual_leave, used_annual_leave, carry_over)
                VALUES(%s,%s,%s,0,0)
                """,
                (int(staff_id), int(year), float(total_annual_leave)),
            )
            cur.execute(
                f"SELECT {_BALANCE_COLUMNS} FROM leave_balances WHERE staff_id=%s AND year=%s",
                (int(staff_id), int(year)),
            )
            return _to_balance(fetchone(cur))

    def set_entitlement(self, staff_id: int, year: int, *, total_annual_leave: float) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_balances
                SET total_annual_leave=%s
                WHERE staff_id=%s AND year=%s AND %s + carry_over - used_annual_leave >= 0
                """,
                (float(total_annual_leave), int(staff_id), int(year), float(total_annual_leave)),
            )
            return cur.rowcount > 0

    def list_balances(self, staff_ids: Sequence[int], year: int) -> Sequence[LeaveBalance]:
        if not staff_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_BALANCE_COLUMNS}
                FROM leave_balances
                WHERE year=%s AND staff_id IN ({in_clause(staff_ids)})
                """,
                (int(year), *[int(s) for s in staff_ids]),
            )
            return [_to_balance(r) for r in fetchall(cur)]

    def pending_annual_days(self, staff_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COALESCE(SUM(days_requested), 0) AS days
                FROM leave_requests
                WHERE staff_id=%s AND leave_type=%s AND status=%s
                """,
                (int(staff_id), LeaveType.ANNUAL.value, LeaveStatus.PENDING.value),
            )
            r = fetchone(cur)
            return int(r["days"]) if r else 0

    # ---- requests -------------------------------------------------------

    def get_request(self, request_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_REQUEST_COLUMNS} FROM leave_requests WHERE request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _to_request(r) if r else None

    def list_requests(
        self,
        *,
        staff_ids: Optional[Sequence[int]] = None,
        status: Optional[LeaveStatus] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[LeaveRequest]:
        if staff_ids is not None and not staff_ids:
            return []
        clauses = ["1=1"]
        params: list[object] = []
        if staff_ids is not None:
            clauses.append(f"staff_id IN ({in_clause(staff_ids)})")
            params.extend(int(s) for s in staff_ids)
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if start is not None:
            clauses.append("end_date >= %s")
            params.append(start)
        if end is not None:
            clauses.append("start_date <= %s")
            params.append(end)
        params.append(int(limit))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_REQUEST_COLUMNS}
                FROM leave_requests
                WHERE {" AND ".join(clauses)}
                ORDER BY submitted_at DESC, request_id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [_to_request(r) for r in fetchall(cur)]

    @staticmethod
    def _lock_balance(cur, staff_id: int, year: int) -> None:
        cur.execute(
            "SELECT staff_id FROM leave_balances WHERE staff_id=%s AND year=%s FOR UPDATE",
            (int(staff_id), int(year)),
        )
        cur.fetchall()

    @staticmethod
    def _ensure_no_overlap(cur, new: NewLeaveRequest) -> None:
        cur.execute(
            """
            SELECT request_id
            FROM leave_requests
            WHERE staff_id=%s
              AND status IN (%s, %s)
              AND COALESCE(modified_start_date, start_date) <= %s
              AND COALESCE(modified_end_date, end_date) >= %s
            LIMIT 1
            """,
            (
                int(new.staff_id),
                LeaveStatus.PENDING.value,
                LeaveStatus.APPROVED.value,
                new.end_date,
                new.start_date,
            ),
        )
        clash = fetchone(cur)
        if clash:
            raise ConflictError(
                "You already have a leave request for overlapping dates",
                details={"conflicting_request_id": int(clash["request_id"])},
            )

    @staticmethod
    def _deduct(cur, staff_id: int, year: int, days: int) -> None:
        cur.execute(
            """
            UPDATE leave_balances
            SET used_annual_leave = used_annual_leave + %s
            WHERE staff_id=%s AND year=%s AND total_annual_leave + carry_over - used_annual_leave >= %s
            """,
            (int(days), int(staff_id), int(year), int(days)),
        )
        if cur.rowcount == 0:
            raise ConflictError("Insufficient leave balance", details={"days_requested": int(days)})

    @staticmethod
    def _insert(cur, new: NewLeaveRequest, *, status: LeaveStatus, reviewed_by=None, comments=None) -> int:
        cur.execute(
            """
            INSERT INTO leave_requests(
                staff_id, leave_type, start_date, end_date, days_requested, reason,
                attachments, status, manager_comments, reviewed_by, reviewed_at, submitted_at
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                int(new.staff_id),
                new.leave_type.value,
                new.start_date,
                new.end_date,
                int(new.days_requested),
                new.reason,
                json.dumps(list(new.attachments)),
                status.value,
                comments,
                reviewed_by,
                to_db_datetime(new.submitted_at) if reviewed_by is not None else None,
                to_db_datetime(new.submitted_at),
            ),
        )
        return int(cur.lastrowid)

    def create_request(self, new: NewLeaveRequest, *, year: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            self._lock_balance(cur, new.staff_id, year)
            self._ensure_no_overlap(cur, new)
            return self._insert(cur, new, status=LeaveStatus.PENDING)

    def create_approved_and_commit(
        self,
        new: NewLeaveRequest,
        *,
        year: int,
        reviewed_by: int,
        comments: str,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            self._lock_balance(cur, new.staff_id, year)
            self._ensure_no_overlap(cur, new)
            if new.leave_type == LeaveType.ANNUAL:
                self._deduct(cur, new.staff_id, year, new.days_requested)
            return self._insert(
                cur,
                new,
                status=LeaveStatus.APPROVED,
                reviewed_by=int(reviewed_by),
                comments=comments,
            )

    @staticmethod
    def _decide(cur, request_id: int, decision: LeaveDecision) -> bool:
        cur.execute(
            """
            UPDATE leave_requests
            SET status=%s, manager_comments=%s, reviewed_by=%s, reviewed_at=%s,
                modified_start_date=COALESCE(%s, modified_start_date),
                modified_end_date=COALESCE(%s, modified_end_date),
                days_requested=COALESCE(%s, days_requested)
            WHERE request_id=%s AND status=%s
            """,
            (
                decision.status.value,
                decision.manager_comments,
                int(decision.reviewed_by),
                to_db_datetime(decision.reviewed_at),
                decision.modified_start_date,
                decision.modified_end_date,
                decision.days_requested,
                int(request_id),
                LeaveStatus.PENDING.value,
            ),
        )
        return cur.rowcount > 0

    def decide(self, request_id: int, decision: LeaveDecision) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._decide(cur, request_id, decision)

    def approve_and_commit(self, request: LeaveRequest, decision: LeaveDecision, *, year: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            if not self._decide(cur, request.request_id, decision):
                raise ConflictError("Leave request has already been reviewed")
            if request.leave_type == LeaveType.ANNUAL:
                self._deduct(cur, request.staff_id, year, request.days_requested)
