"""Approval Gate: who may perform which transition on which record.

Both the shift engine and the leave workflow ask the gate before touching
a record, so role, organization and ownership rules live in one place.
The gate only answers "is this caller allowed"; whether the record is in
the right *state* is decided by the services.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..core.enums import Role
from ..core.exceptions import ForbiddenError
from ..leave.model import LeaveRequest
from ..shifts.model import Shift
from ..users.model import Member


@dataclass(frozen=True)
class Caller:
    """Resolved identity of the authenticated caller (trusted as given)."""

    user_id: int
    role: Role
    organization_id: int

    @property
    def is_manager(self) -> bool:
        return self.role == Role.MANAGER

    @property
    def is_staff(self) -> bool:
        return self.role == Role.STAFF


class ShiftAction(str, Enum):
    VIEW = "view"
    UPDATE = "update"
    DELETE = "delete"
    REVIEW = "review"
    CLAIM = "claim"
    CLOCK_IN = "clock-in"
    CLOCK_OUT = "clock-out"
    COMPLETE = "complete"
    CANCEL = "cancel"
    MARK_MISSED = "mark-missed"


class LeaveAction(str, Enum):
    VIEW = "view"
    REVIEW = "review"
    CANCEL = "cancel"


_MANAGER_SHIFT_ACTIONS = frozenset(
    {
        ShiftAction.VIEW,
        ShiftAction.UPDATE,
        ShiftAction.DELETE,
        ShiftAction.REVIEW,
        ShiftAction.COMPLETE,
        ShiftAction.CANCEL,
        ShiftAction.MARK_MISSED,
    }
)
_ASSIGNEE_SHIFT_ACTIONS = frozenset(
    {
        ShiftAction.VIEW,
        ShiftAction.DELETE,
        ShiftAction.CLOCK_IN,
        ShiftAction.CLOCK_OUT,
        ShiftAction.COMPLETE,
    }
)
_OPEN_SHIFT_STAFF_ACTIONS = frozenset({ShiftAction.VIEW, ShiftAction.CLAIM})


class ApprovalGate:
    def shift_actions(self, caller: Caller, shift: Shift) -> frozenset[ShiftAction]:
        if caller.organization_id != shift.organization_id:
            return frozenset()
        if caller.is_manager:
            return _MANAGER_SHIFT_ACTIONS
        if shift.assigned_to is None:
            return _OPEN_SHIFT_STAFF_ACTIONS
        if shift.assigned_to == caller.user_id:
            return _ASSIGNEE_SHIFT_ACTIONS
        return frozenset()

    def require_shift(self, caller: Caller, shift: Shift, action: ShiftAction) -> None:
        if caller.organization_id != shift.organization_id:
            raise ForbiddenError("Forbidden: different organization")
        if action not in self.shift_actions(caller, shift):
            if action in (ShiftAction.CLOCK_IN, ShiftAction.CLOCK_OUT) and caller.is_staff:
                raise ForbiddenError("Forbidden: you are not assigned to this shift")
            raise ForbiddenError(f"Forbidden: you may not {action.value} this shift")

    def leave_actions(self, caller: Caller, request: LeaveRequest, staff: Optional[Member]) -> frozenset[LeaveAction]:
        if caller.is_staff and request.staff_id == caller.user_id:
            return frozenset({LeaveAction.VIEW, LeaveAction.CANCEL})
        if caller.is_manager and staff is not None and self.manages(caller, staff):
            return frozenset({LeaveAction.VIEW, LeaveAction.REVIEW})
        return frozenset()

    def require_leave(
        self,
        caller: Caller,
        request: LeaveRequest,
        staff: Optional[Member],
        action: LeaveAction,
    ) -> None:
        if action not in self.leave_actions(caller, request, staff):
            if action == LeaveAction.REVIEW:
                raise ForbiddenError("Access denied. You can only review your staff's requests.")
            if action == LeaveAction.CANCEL:
                raise ForbiddenError("You can only cancel your own leave requests")
            raise ForbiddenError("Forbidden: you may not view this leave request")

    @staticmethod
    def manages(caller: Caller, staff: Member) -> bool:
        return (
            caller.is_manager
            and staff.manager_id == caller.user_id
            and staff.organization_id == caller.organization_id
        )

    def require_manager_of(self, caller: Caller, staff: Member) -> None:
        self.require_role(caller, Role.MANAGER)
        if not self.manages(caller, staff):
            raise ForbiddenError("You can only manage your own staff members")

    @staticmethod
    def require_role(caller: Caller, role: Role) -> None:
        if caller.role != role:
            label = "managers" if role == Role.MANAGER else "staff"
            raise ForbiddenError(f"Access denied. Only {label} can do this.")
