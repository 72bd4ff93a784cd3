"""Staff-facing view over everything a manager decides about them.

Leave requests and shifts are merged into one feed. A shift's approval
state is derived from its lifecycle until it is completed, after which the
manager's verdict applies.
"""

from __future__ import annotations

import math
from datetime import datetime, time, timezone
from typing import Optional, Sequence

from ..access.gate import ApprovalGate, Caller
from ..core.constants import REPORT_ROW_LIMIT
from ..core.enums import ApprovalStatus, LeaveStatus, Role, ShiftStatus
from ..core.exceptions import ValidationError
from ..leave.ledger import LeaveLedger
from ..leave.model import LeaveRequest
from ..leave.repository import LeaveRepository
from ..shifts.model import Shift
from ..shifts.repository import ShiftRepository
from ..users.repository import MemberRepository
from .model import LEAVE_ITEM, SHIFT_ITEM, ApprovalItem

FEED_KINDS = (LEAVE_ITEM, SHIFT_ITEM)
FEED_STATUSES = tuple(s.value for s in LeaveStatus)
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def shift_approval_status(shift: Shift) -> str:
    if shift.status == ShiftStatus.COMPLETED:
        return shift.approval_status.value
    if shift.approval_status == ApprovalStatus.REJECTED:
        # sent back for rework
        return ApprovalStatus.REJECTED.value
    if shift.status == ShiftStatus.OPEN:
        return ApprovalStatus.PENDING.value
    if shift.status in (ShiftStatus.CANCELLED, ShiftStatus.MISSED):
        return ApprovalStatus.REJECTED.value
    return ApprovalStatus.APPROVED.value


def _shift_submitted_at(shift: Shift) -> datetime:
    return shift.created_at or datetime.combine(shift.date, time.min, tzinfo=timezone.utc)


def _choice(value: Optional[str], allowed: Sequence[str], field_name: str) -> Optional[str]:
    value = (value or "").strip().lower()
    if not value or value == "all":
        return None
    if value not in allowed:
        raise ValidationError(
            f"{field_name} must be one of: all, {', '.join(allowed)}",
            details={"field": field_name},
        )
    return value


class ApprovalService:
    def __init__(
        self,
        leaves: LeaveRepository,
        shifts: ShiftRepository,
        members: MemberRepository,
        ledger: LeaveLedger,
        *,
        gate: Optional[ApprovalGate] = None,
    ):
        self._leaves = leaves
        self._shifts = shifts
        self._members = members
        self._ledger = ledger
        self._gate = gate or ApprovalGate()

    def _reviewer(self, user_id: Optional[int]) -> Optional[dict]:
        if user_id is None:
            return None
        member = self._members.get_by_id(user_id)
        return {"id": user_id, "name": member.name if member else "Unknown"}

    def _leave_item(self, r: LeaveRequest) -> ApprovalItem:
        return ApprovalItem(
            kind=LEAVE_ITEM,
            item_id=r.request_id,
            status=r.status.value,
            title=f"{r.leave_type.value.capitalize()} Leave Request",
            description=f"{r.days_requested} days - {r.reason}",
            submitted_at=r.submitted_at,
            reviewed_at=r.reviewed_at,
            reviewed_by=self._reviewer(r.reviewed_by),
            manager_comments=r.manager_comments,
            details={
                "leave_type": r.leave_type.value,
                "start_date": r.start_date.isoformat(),
                "end_date": r.end_date.isoformat(),
                "days_requested": r.days_requested,
                "reason": r.reason,
                "attachments": list(r.attachments),
                "modified_start_date": r.modified_start_date.isoformat() if r.modified_start_date else None,
                "modified_end_date": r.modified_end_date.isoformat() if r.modified_end_date else None,
            },
        )

    def _shift_item(self, s: Shift) -> ApprovalItem:
        return ApprovalItem(
            kind=SHIFT_ITEM,
            item_id=s.shift_id,
            status=shift_approval_status(s),
            title=f"Shift Assignment - {s.name}",
            description=f"{s.date.isoformat()} - {s.start_time} to {s.end_time}",
            submitted_at=_shift_submitted_at(s),
            reviewed_at=s.updated_at,
            reviewed_by=self._reviewer(s.created_by),
            manager_comments=s.notes,
            details={
                "name": s.name,
                "date": s.date.isoformat(),
                "start_time": s.start_time,
                "end_time": s.end_time,
                "role": s.role,
                "location": s.location,
                "status": s.status.value,
                "approval_status": s.approval_status.value,
                "clock_in_time": s.clock_in_time.isoformat() if s.clock_in_time else None,
                "clock_out_time": s.clock_out_time.isoformat() if s.clock_out_time else None,
                "worked_hours": s.worked_hours,
            },
        )

    def _my_leaves(self, caller: Caller) -> Sequence[LeaveRequest]:
        return self._leaves.list_requests(staff_ids=[caller.user_id], limit=REPORT_ROW_LIMIT)

    def _my_shifts(self, caller: Caller) -> Sequence[Shift]:
        return self._shifts.list_for_assignee(user_id=caller.user_id, organization_id=caller.organization_id)

    def staff_feed(
        self,
        caller: Caller,
        *,
        status: Optional[str] = None,
        kind: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> dict:
        """Newest-first page of the caller's leave requests and shifts.

        ``stats`` always counts the whole feed; ``pagination.total`` counts
        what the filters kept.
        """
        self._gate.require_role(caller, Role.STAFF)
        status = _choice(status, FEED_STATUSES, "status")
        kind = _choice(kind, FEED_KINDS, "type")
        if page < 1:
            raise ValidationError("page must be at least 1", details={"field": "page"})
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", details={"field": "limit"})

        items = [self._leave_item(r) for r in self._my_leaves(caller)]
        items += [self._shift_item(s) for s in self._my_shifts(caller)]

        kept = [
            i
            for i in items
            if (status is None or i.status == status) and (kind is None or i.kind == kind)
        ]
        kept.sort(key=lambda i: (i.submitted_at, i.kind, i.item_id), reverse=True)
        offset = (page - 1) * limit

        return {
            "approvals": [i.to_dict() for i in kept[offset : offset + limit]],
            "pagination": {
                "current": page,
                "pages": math.ceil(len(kept) / limit),
                "total": len(kept),
                "limit": limit,
            },
            "stats": {
                "total": len(items),
                **{s: sum(1 for i in items if i.status == s) for s in FEED_STATUSES},
            },
        }

    def stats(self, caller: Caller, *, now: datetime) -> dict:
        self._gate.require_role(caller, Role.STAFF)
        today = self._ledger.today(caller.organization_id, now)
        leaves = self._my_leaves(caller)
        shifts = self._my_shifts(caller)

        pending = sum(1 for r in leaves if r.status == LeaveStatus.PENDING)
        approved = sum(1 for r in leaves if r.status == LeaveStatus.APPROVED and r.start_date.year >= today.year)
        rejected = sum(
            1 for r in leaves if r.status == LeaveStatus.REJECTED and r.submitted_at.year >= today.year
        )
        upcoming = sum(
            1 for s in shifts if s.date >= today and s.status in (ShiftStatus.ASSIGNED, ShiftStatus.IN_PROGRESS)
        )
        return {
            "year": today.year,
            "leaves": {"total": len(leaves), "pending": pending, "approved": approved, "rejected": rejected},
            "shifts": {"total": len(shifts), "upcoming": upcoming},
            "summary": {
                "total_pending": pending,
                "total_approved": approved + len(shifts),
                "total_rejected": rejected,
            },
        }
