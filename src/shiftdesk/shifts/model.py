from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import ApprovalStatus, ShiftStatus


@dataclass(frozen=True)
class Shift:
    """Domain entity: a schedulable unit of work.

    ``status`` and ``approval_status`` are two independent state machines;
    ``approval_status`` is only meaningful once ``status`` is completed.
    ``version`` increments on every write and guards conditional updates.
    """

    shift_id: int
    organization_id: int
    created_by: int
    name: str
    assigned_to: Optional[int]
    is_open: bool
    date: date
    start_time: str
    end_time: str
    status: ShiftStatus
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    timezone: Optional[str] = None
    role: Optional[str] = None
    location: Optional[str] = None
    clock_in_time: Optional[datetime] = None
    clock_out_time: Optional[datetime] = None
    worked_hours: float = 0.0
    notes: Optional[str] = None
    reminder_sent: bool = False
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "shift_id": self.shift_id,
            "organization_id": self.organization_id,
            "created_by": self.created_by,
            "name": self.name,
            "assigned_to": self.assigned_to,
            "is_open": self.is_open,
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "timezone": self.timezone,
            "role": self.role,
            "location": self.location,
            "status": self.status.value,
            "approval_status": self.approval_status.value,
            "clock_in_time": self.clock_in_time.isoformat() if self.clock_in_time else None,
            "clock_out_time": self.clock_out_time.isoformat() if self.clock_out_time else None,
            "worked_hours": self.worked_hours,
            "notes": self.notes or "",
            "reminder_sent": self.reminder_sent,
        }


@dataclass(frozen=True)
class NewShift:
    """Values for a shift that has not been persisted yet."""

    organization_id: int
    created_by: int
    name: str
    assigned_to: Optional[int]
    date: date
    start_time: str
    end_time: str
    status: ShiftStatus
    timezone: Optional[str] = None
    role: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status == ShiftStatus.OPEN
