from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller role used for authorization."""

    MANAGER = "manager"
    STAFF = "staff"


class ShiftStatus(str, Enum):
    """Lifecycle status of a shift."""

    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    MISSED = "missed"


class ApprovalStatus(str, Enum):
    """Manager verdict on a completed shift, independent of ShiftStatus."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class LeaveType(str, Enum):
    ANNUAL = "annual"
    SICK = "sick"


class LeaveStatus(str, Enum):
    """Workflow status of a leave request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    MODIFIED = "modified"


class NotificationType(str, Enum):
    LEAVE_REQUEST = "leave_request"
    LEAVE_APPROVED = "leave_approved"
    LEAVE_REJECTED = "leave_rejected"
    LEAVE_MODIFIED = "leave_modified"
    LEAVE_ASSIGNED = "leave_assigned"
    SHIFT_ASSIGNED = "shift_assigned"
    SHIFT_UPDATED = "shift_updated"
    SHIFT_CANCELLED = "shift_cancelled"
    SHIFT_REJECTED = "shift_rejected"
    SHIFT_REMINDER = "shift_reminder"
    SHIFT_SCHEDULE_CREATED = "shift_schedule_created"
