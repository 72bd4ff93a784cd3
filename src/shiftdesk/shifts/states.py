from __future__ import annotations

from ..core.enums import ApprovalStatus, ShiftStatus
from ..core.exceptions import PreconditionError

# Lifecycle transitions. COMPLETED -> ASSIGNED is the rework path taken when
# a manager rejects the completed shift.
STATUS_TRANSITIONS: dict[ShiftStatus, frozenset[ShiftStatus]] = {
    ShiftStatus.OPEN: frozenset({ShiftStatus.ASSIGNED, ShiftStatus.CANCELLED}),
    ShiftStatus.ASSIGNED: frozenset(
        {
            ShiftStatus.OPEN,
            ShiftStatus.IN_PROGRESS,
            ShiftStatus.COMPLETED,
            ShiftStatus.CANCELLED,
            ShiftStatus.MISSED,
        }
    ),
    ShiftStatus.IN_PROGRESS: frozenset({ShiftStatus.COMPLETED}),
    ShiftStatus.COMPLETED: frozenset({ShiftStatus.ASSIGNED}),
    ShiftStatus.CANCELLED: frozenset(),
    ShiftStatus.MISSED: frozenset(),
}

# Review verdicts; only reachable while status is COMPLETED.
APPROVAL_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({ApprovalStatus.APPROVED, ApprovalStatus.REJECTED}),
    ApprovalStatus.APPROVED: frozenset(),
    ApprovalStatus.REJECTED: frozenset({ApprovalStatus.PENDING}),
}


def ensure_status_transition(current: ShiftStatus, target: ShiftStatus) -> None:
    if target not in STATUS_TRANSITIONS[current]:
        raise PreconditionError(
            f"Shift cannot move from {current.value} to {target.value}",
            details={"status": current.value},
        )


def ensure_reviewable(status: ShiftStatus, approval: ApprovalStatus) -> None:
    if status != ShiftStatus.COMPLETED:
        raise PreconditionError(
            "Shift cannot be reviewed unless it is completed",
            details={"status": status.value},
        )
    if approval != ApprovalStatus.PENDING:
        raise PreconditionError(
            "Shift has already been reviewed",
            details={"approval_status": approval.value},
        )
