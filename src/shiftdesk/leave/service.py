from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence, Union

from ..access.gate import ApprovalGate, Caller, LeaveAction
from ..common.datetime_utils import inclusive_days
from ..common.validators import optional_text, require_date, require_int, require_non_empty
from ..core.constants import DEFAULT_LIST_LIMIT, MANAGER_ASSIGNED_COMMENT, STAFF_CANCELLED_COMMENT
from ..core.enums import LeaveStatus, LeaveType, NotificationType, Role
from ..core.exceptions import ConflictError, NotFoundError, PreconditionError, ValidationError
from ..notifications.model import NotificationEvent
from ..notifications.notifier import Notifier, dispatch
from ..users.model import Member
from ..users.repository import MemberRepository
from .ledger import LeaveLedger
from .model import LeaveDecision, LeaveRequest, NewLeaveRequest
from .repository import LeaveRepository

logger = logging.getLogger(__name__)

_REVIEW_NOTIFICATIONS = {
    LeaveStatus.APPROVED: NotificationType.LEAVE_APPROVED,
    LeaveStatus.REJECTED: NotificationType.LEAVE_REJECTED,
    LeaveStatus.MODIFIED: NotificationType.LEAVE_MODIFIED,
}


def _parse_leave_type(value: Union[str, LeaveType]) -> LeaveType:
    try:
        return LeaveType(value)
    except ValueError:
        raise ValidationError("Leave type must be annual or sick", details={"field": "type"})


def _parse_review_action(value: Union[str, LeaveStatus]) -> LeaveStatus:
    try:
        action = LeaveStatus(value)
    except ValueError:
        action = None
    if action not in _REVIEW_NOTIFICATIONS:
        raise ValidationError(
            "Action must be approved, rejected or modified",
            details={"field": "action"},
        )
    return action


class LeaveService:
    """Leave request workflow: submit, review, cancel and manager assignment."""

    def __init__(
        self,
        leaves: LeaveRepository,
        members: MemberRepository,
        ledger: LeaveLedger,
        notifier: Notifier,
        *,
        gate: Optional[ApprovalGate] = None,
    ):
        self._leaves = leaves
        self._members = members
        self._ledger = ledger
        self._notifier = notifier
        self._gate = gate or ApprovalGate()

    def _get_request(self, request_id: int) -> LeaveRequest:
        request = self._leaves.get_request(int(request_id))
        if request is None:
            raise NotFoundError("Leave request not found")
        return request

    def _get_staff(self, staff_id: int) -> Member:
        staff = self._members.get_by_id(require_int(staff_id, "staff_id"))
        if staff is None or not staff.is_staff:
            raise NotFoundError("Staff member not found")
        return staff

    def _validated_range(self, start_date, end_date) -> tuple[date, date, int]:
        start = require_date(start_date, "start_date")
        end = require_date(end_date, "end_date")
        if start > end:
            raise ValidationError("End date must be after start date", details={"field": "end_date"})
        return start, end, inclusive_days(start, end)

    def submit(
        self,
        caller: Caller,
        *,
        leave_type: Union[str, LeaveType],
        start_date,
        end_date,
        reason: str,
        attachments: Sequence[str] = (),
        now: datetime,
    ) -> LeaveRequest:
        self._gate.require_role(caller, Role.STAFF)
        kind = _parse_leave_type(leave_type)
        start, end, days = self._validated_range(start_date, end_date)
        if start < self._ledger.today(caller.organization_id, now):
            raise ValidationError("Cannot request leave for past dates", details={"field": "start_date"})
        reason = require_non_empty(reason, "reason")
        files = tuple(a for a in (attachments or ()) if a and str(a).strip())
        if kind == LeaveType.SICK and not files:
            raise ValidationError(
                "Doctor's report is required for sick leave",
                details={"field": "attachments"},
            )

        year = self._ledger.charge_year(start)
        balance = self._ledger.get_or_init_balance(caller.user_id, year)
        if kind == LeaveType.ANNUAL:
            self._ledger.check_available(balance, days)

        request_id = self._leaves.create_request(
            NewLeaveRequest(
                staff_id=caller.user_id,
                leave_type=kind,
                start_date=start,
                end_date=end,
                days_requested=days,
                reason=reason,
                submitted_at=now,
                attachments=files,
            ),
            year=year,
        )
        logger.info("Leave request %s submitted staff=%s type=%s days=%s", request_id, caller.user_id, kind.value, days)

        staff = self._members.get_by_id(caller.user_id)
        if staff is not None and staff.manager_id is not None:
            dispatch(
                self._notifier,
                NotificationEvent(
                    recipient_id=staff.manager_id,
                    type=NotificationType.LEAVE_REQUEST,
                    title="New Leave Request",
                    message=(
                        f"{staff.name} requested {days} day(s) of {kind.value} leave "
                        f"from {start.isoformat()} to {end.isoformat()}"
                    ),
                    related_model="Leave",
                    related_id=request_id,
                ),
            )
        return self._get_request(request_id)

    def review(
        self,
        caller: Caller,
        request_id: int,
        *,
        action: Union[str, LeaveStatus],
        comments: Optional[str] = None,
        modified_start=None,
        modified_end=None,
        now: datetime,
    ) -> LeaveRequest:
        self._gate.require_role(caller, Role.MANAGER)
        verdict = _parse_review_action(action)
        request = self._get_request(request_id)
        staff = self._members.get_by_id(request.staff_id)
        self._gate.require_leave(caller, request, staff, LeaveAction.REVIEW)
        if request.status != LeaveStatus.PENDING:
            raise PreconditionError(
                "This request has already been reviewed",
                details={"status": request.status.value},
            )

        new_start = new_end = None
        days = None
        if verdict == LeaveStatus.MODIFIED:
            new_start = require_date(modified_start, "modified_start_date") if modified_start else None
            new_end = require_date(modified_end, "modified_end_date") if modified_end else None
            effective_start = new_start or request.start_date
            effective_end = new_end or request.end_date
            if effective_start > effective_end:
                raise ValidationError("End date must be after start date", details={"field": "modified_end_date"})
            if new_start or new_end:
                days = inclusive_days(effective_start, effective_end)

        decision = LeaveDecision(
            status=verdict,
            reviewed_by=caller.user_id,
            reviewed_at=now,
            manager_comments=optional_text(comments, "comments"),
            modified_start_date=new_start,
            modified_end_date=new_end,
            days_requested=days,
        )

        if verdict == LeaveStatus.APPROVED:
            year = self._ledger.charge_year(request.start_date)
            if request.leave_type == LeaveType.ANNUAL:
                self._ledger.get_or_init_balance(request.staff_id, year)
            self._leaves.approve_and_commit(request, decision, year=year)
        elif not self._leaves.decide(request.request_id, decision):
            raise ConflictError("This request has already been reviewed")

        logger.info("Leave request %s %s by manager=%s", request.request_id, verdict.value, caller.user_id)
        reviewed = self._get_request(request.request_id)
        dispatch(
            self._notifier,
            NotificationEvent(
                recipient_id=reviewed.staff_id,
                type=_REVIEW_NOTIFICATIONS[verdict],
                title=f"Leave Request {verdict.value.capitalize()}",
                message=(
                    f"Your {reviewed.leave_type.value} leave request from "
                    f"{reviewed.effective_start.isoformat()} to {reviewed.effective_end.isoformat()} "
                    f"was {verdict.value}"
                    + (f": {reviewed.manager_comments}" if reviewed.manager_comments else "")
                ),
                related_model="Leave",
                related_id=reviewed.request_id,
            ),
        )
        return reviewed

    def cancel(self, caller: Caller, request_id: int, *, now: datetime) -> LeaveRequest:
        self._gate.require_role(caller, Role.STAFF)
        request = self._get_request(request_id)
        self._gate.require_leave(caller, request, None, LeaveAction.CANCEL)
        if request.status != LeaveStatus.PENDING:
            raise PreconditionError(
                "Only pending requests can be cancelled",
                details={"status": request.status.value},
            )
        decided = self._leaves.decide(
            request.request_id,
            LeaveDecision(
                status=LeaveStatus.REJECTED,
                reviewed_by=caller.user_id,
                reviewed_at=now,
                manager_comments=STAFF_CANCELLED_COMMENT,
            ),
        )
        if not decided:
            raise ConflictError("This request has already been reviewed")
        logger.info("Leave request %s cancelled by staff=%s", request.request_id, caller.user_id)
        return self._get_request(request.request_id)

    def assign(
        self,
        caller: Caller,
        *,
        staff_id: int,
        leave_type: Union[str, LeaveType],
        start_date,
        end_date,
        reason: str,
        now: datetime,
    ) -> LeaveRequest:
        staff = self._get_staff(staff_id)
        self._gate.require_manager_of(caller, staff)
        kind = _parse_leave_type(leave_type)
        start, end, days = self._validated_range(start_date, end_date)
        reason = require_non_empty(reason, "reason")

        year = self._ledger.charge_year(start)
        balance = self._ledger.get_or_init_balance(staff.user_id, year)
        if kind == LeaveType.ANNUAL:
            self._ledger.check_available(balance, days)

        request_id = self._leaves.create_approved_and_commit(
            NewLeaveRequest(
                staff_id=staff.user_id,
                leave_type=kind,
                start_date=start,
                end_date=end,
                days_requested=days,
                reason=reason,
                submitted_at=now,
            ),
            year=year,
            reviewed_by=caller.user_id,
            comments=MANAGER_ASSIGNED_COMMENT,
        )
        logger.info("Leave %s assigned staff=%s by manager=%s days=%s", request_id, staff.user_id, caller.user_id, days)
        dispatch(
            self._notifier,
            NotificationEvent(
                recipient_id=staff.user_id,
                type=NotificationType.LEAVE_ASSIGNED,
                title="Leave Assigned",
                message=(
                    f"Your manager assigned {days} day(s) of {kind.value} leave "
                    f"from {start.isoformat()} to {end.isoformat()}"
                ),
                related_model="Leave",
                related_id=request_id,
            ),
        )
        return self._get_request(request_id)

    def get_request(self, caller: Caller, request_id: int) -> LeaveRequest:
        request = self._get_request(request_id)
        staff = self._members.get_by_id(request.staff_id) if caller.is_manager else None
        self._gate.require_leave(caller, request, staff, LeaveAction.VIEW)
        return request

    def list_my_requests(
        self,
        caller: Caller,
        *,
        status: Optional[LeaveStatus] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[LeaveRequest]:
        self._gate.require_role(caller, Role.STAFF)
        return self._leaves.list_requests(staff_ids=[caller.user_id], status=status, limit=limit)

    def list_team_requests(
        self,
        caller: Caller,
        *,
        status: Optional[LeaveStatus] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[LeaveRequest]:
        self._gate.require_role(caller, Role.MANAGER)
        team = [
            m.user_id
            for m in self._members.list_staff_for_manager(caller.user_id)
            if m.organization_id == caller.organization_id
        ]
        return self._leaves.list_requests(staff_ids=team, status=status, limit=limit)
