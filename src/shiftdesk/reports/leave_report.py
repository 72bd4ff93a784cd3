from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..access.gate import ApprovalGate, Caller
from ..core.constants import REPORT_ROW_LIMIT
from ..core.enums import LeaveStatus, LeaveType, Role
from ..leave.ledger import LeaveLedger
from ..leave.model import LeaveRequest
from ..leave.repository import LeaveRepository
from ..users.repository import MemberRepository


def _count(requests: Sequence[LeaveRequest], status: LeaveStatus) -> int:
    return sum(1 for r in requests if r.status == status)


class LeaveReportService:
    def __init__(
        self,
        leaves: LeaveRepository,
        members: MemberRepository,
        ledger: LeaveLedger,
        *,
        gate: Optional[ApprovalGate] = None,
    ):
        self._leaves = leaves
        self._members = members
        self._ledger = ledger
        self._gate = gate or ApprovalGate()

    def _team(self, caller: Caller):
        return [
            m
            for m in self._members.list_staff_for_manager(caller.user_id)
            if m.organization_id == caller.organization_id
        ]

    def yearly_report(self, caller: Caller, year: int) -> dict:
        """Approved leave days per staff member for ``year``, split by type."""
        self._gate.require_role(caller, Role.MANAGER)
        team = self._team(caller)
        requests = self._leaves.list_requests(
            staff_ids=[m.user_id for m in team],
            status=LeaveStatus.APPROVED,
            start=date(int(year), 1, 1),
            end=date(int(year), 12, 31),
            limit=REPORT_ROW_LIMIT,
        )

        report: dict[int, dict] = {}
        names = {m.user_id: m.name for m in team}
        for r in requests:
            if r.start_date.year != int(year):
                continue
            row = report.setdefault(
                r.staff_id,
                {
                    "staff_id": r.staff_id,
                    "staff_name": names.get(r.staff_id, ""),
                    LeaveType.ANNUAL.value: 0,
                    LeaveType.SICK.value: 0,
                    "total": 0,
                },
            )
            row[r.leave_type.value] += r.days_requested
            row["total"] += r.days_requested

        return {"year": int(year), "report": sorted(report.values(), key=lambda x: x["staff_name"])}

    def stats(self, caller: Caller, *, now: datetime) -> dict:
        year = self._ledger.balance_year(caller.organization_id, now)
        if caller.is_manager:
            team = self._team(caller)
            staff_ids = [m.user_id for m in team]
        else:
            team = None
            staff_ids = [caller.user_id]

        requests = [
            r
            for r in self._leaves.list_requests(
                staff_ids=staff_ids,
                start=date(year, 1, 1),
                limit=REPORT_ROW_LIMIT,
            )
            if r.start_date.year >= year
        ]
        approved = [r for r in requests if r.status == LeaveStatus.APPROVED]
        stats = {
            "year": year,
            "total_requests": len(requests),
            "pending_requests": _count(requests, LeaveStatus.PENDING),
            "approved_requests": len(approved),
            "rejected_requests": _count(requests, LeaveStatus.REJECTED),
            "modified_requests": _count(requests, LeaveStatus.MODIFIED),
            "total_days_requested": sum(r.days_requested for r in requests),
            "approved_days": sum(r.days_requested for r in approved),
        }
        if team is not None:
            stats["staff_count"] = len(team)
        return stats
