from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import LeaveStatus, LeaveType


@dataclass(frozen=True)
class LeaveBalance:
    """Annual-leave ledger row for one staff member and one calendar year."""

    staff_id: int
    year: int
    total_annual_leave: float
    used_annual_leave: float = 0.0
    carry_over: float = 0.0

    @property
    def remaining_annual_leave(self) -> float:
        return self.total_annual_leave + self.carry_over - self.used_annual_leave

    def to_dict(self) -> dict:
        return {
            "staff_id": self.staff_id,
            "year": self.year,
            "total_annual_leave": self.total_annual_leave,
            "used_annual_leave": self.used_annual_leave,
            "carry_over": self.carry_over,
            "remaining_annual_leave": self.remaining_annual_leave,
        }


@dataclass(frozen=True)
class LeaveRequest:
    request_id: int
    staff_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    days_requested: int
    reason: str
    status: LeaveStatus
    submitted_at: datetime
    attachments: tuple[str, ...] = field(default_factory=tuple)
    manager_comments: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    modified_start_date: Optional[date] = None
    modified_end_date: Optional[date] = None

    @property
    def effective_start(self) -> date:
        return self.modified_start_date or self.start_date

    @property
    def effective_end(self) -> date:
        return self.modified_end_date or self.end_date

    @property
    def blocks_dates(self) -> bool:
        """Pending and approved requests reserve their dates."""
        return self.status in (LeaveStatus.PENDING, LeaveStatus.APPROVED)

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "staff_id": self.staff_id,
            "type": self.leave_type.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "days_requested": self.days_requested,
            "reason": self.reason,
            "attachments": list(self.attachments),
            "status": self.status.value,
            "manager_comments": self.manager_comments or "",
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "modified_start_date": self.modified_start_date.isoformat() if self.modified_start_date else None,
            "modified_end_date": self.modified_end_date.isoformat() if self.modified_end_date else None,
            "submitted_at": self.submitted_at.isoformat(),
        }


@dataclass(frozen=True)
class NewLeaveRequest:
    staff_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    days_requested: int
    reason: str
    submitted_at: datetime
    attachments: tuple[str, ...] = ()


@dataclass(frozen=True)
class LeaveDecision:
    """Values written when a pending request is reviewed."""

    status: LeaveStatus
    reviewed_by: int
    reviewed_at: datetime
    manager_comments: Optional[str] = None
    modified_start_date: Optional[date] = None
    modified_end_date: Optional[date] = None
    days_requested: Optional[int] = None
