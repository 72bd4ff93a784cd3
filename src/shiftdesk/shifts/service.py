"""Shift lifecycle engine.

Every transition follows the same steps: load the shift, ask the gate,
check the state and time window against the injected ``now``, then write the
new version with a compare-and-swap on ``version``. Notifications go out
only after the write has committed.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence, Union

from ..access.gate import ApprovalGate, Caller, ShiftAction
from ..common.datetime_utils import hours_between, resolve_zone
from ..common.validators import optional_text, require_date, require_hhmm, require_int, require_non_empty
from ..core.constants import DEFAULT_LIST_LIMIT, DEFAULT_TIMEZONE
from ..core.enums import ApprovalStatus, NotificationType, ReviewDecision, Role, ShiftStatus
from ..core.exceptions import ConflictError, ForbiddenError, NotFoundError, PreconditionError, ValidationError
from ..notifications.model import NotificationEvent
from ..notifications.notifier import Notifier, dispatch
from ..users.model import Member
from ..users.organization_repository import OrganizationRepository
from ..users.repository import MemberRepository
from .model import NewShift, Shift
from .repository import ShiftRepository
from .states import ensure_reviewable, ensure_status_transition
from .windows import clock_in_window, minutes_until_clock_out, shift_start

logger = logging.getLogger(__name__)

# Marks an update field the caller did not send (None means "clear it").
UNSET = object()

_SCHEDULE_FIELDS = ("date", "start_time", "end_time", "timezone")


def _append_note(existing: Optional[str], note: Optional[str]) -> Optional[str]:
    if not note:
        return existing
    if not existing:
        return note
    return f"{existing}\n{note}"


def _parse_decision(value: Union[str, ReviewDecision]) -> ReviewDecision:
    try:
        return ReviewDecision(value)
    except ValueError:
        raise ValidationError("Decision must be approve or reject", details={"field": "decision"})


class ShiftService:
    def __init__(
        self,
        shifts: ShiftRepository,
        members: MemberRepository,
        organizations: OrganizationRepository,
        notifier: Notifier,
        *,
        gate: Optional[ApprovalGate] = None,
        default_timezone: str = DEFAULT_TIMEZONE,
    ):
        self._shifts = shifts
        self._members = members
        self._organizations = organizations
        self._notifier = notifier
        self._gate = gate or ApprovalGate()
        self._default_timezone = default_timezone

    # ---- helpers --------------------------------------------------------

    def _load(self, shift_id: int) -> Shift:
        shift = self._shifts.get_by_id(int(shift_id))
        if shift is None:
            raise NotFoundError("Shift not found")
        return shift

    def _load_for(self, caller: Caller, shift_id: int, action: ShiftAction) -> Shift:
        shift = self._load(shift_id)
        self._gate.require_shift(caller, shift, action)
        return shift

    def _commit(self, current: Shift, changed: Shift) -> Shift:
        if not self._shifts.update(changed, expected_version=current.version):
            raise ConflictError(
                "Shift was changed by someone else, reload and try again",
                details={"shift_id": current.shift_id},
            )
        stored = self._shifts.get_by_id(current.shift_id)
        return stored if stored is not None else replace(changed, version=current.version + 1)

    def _start_of(self, shift: Shift) -> datetime:
        org = self._organizations.get_by_id(shift.organization_id)
        return shift_start(
            shift,
            org_timezone=org.timezone if org else None,
            default_timezone=self._default_timezone,
        )

    def _staff_in_org(self, caller: Caller, staff_id, field: str = "staff_id") -> Member:
        staff = self._members.get_by_id(require_int(staff_id, field))
        if staff is None or not staff.is_staff or staff.organization_id != caller.organization_id:
            raise NotFoundError("Staff member not found in your organization")
        return staff

    @staticmethod
    def _validate_timezone(value: Optional[str]) -> Optional[str]:
        value = optional_text(value, "timezone")
        if value and resolve_zone(value, default="").key != value:
            raise ValidationError("Unknown timezone", details={"field": "timezone"})
        return value

    def _notify(self, recipient_id: Optional[int], kind: NotificationType, title: str, message: str, shift_id: int) -> None:
        if recipient_id is None:
            return
        dispatch(
            self._notifier,
            NotificationEvent(
                recipient_id=int(recipient_id),
                type=kind,
                title=title,
                message=message,
                related_model="Shift",
                related_id=int(shift_id),
            ),
        )

    @staticmethod
    def _describe(shift: Shift) -> str:
        return f"{shift.name} on {shift.date.isoformat()} {shift.start_time}-{shift.end_time}"

    # ---- creation -------------------------------------------------------

    def create_assigned_shift(
        self,
        caller: Caller,
        *,
        staff_id: int,
        name: str,
        date,
        start_time: str,
        end_time: str,
        role: Optional[str] = None,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        timezone: Optional[str] = None,
        notify: bool = True,
        now: datetime,
    ) -> Shift:
        """Create a shift assigned to one staff member.

        ``notify=False`` lets bulk callers send one summary instead of a
        message per shift.
        """
        self._gate.require_role(caller, Role.MANAGER)
        new = NewShift(
            organization_id=caller.organization_id,
            created_by=caller.user_id,
            name=require_non_empty(name, "name"),
            assigned_to=None,
            date=require_date(date, "date"),
            start_time=require_hhmm(start_time, "start_time"),
            end_time=require_hhmm(end_time, "end_time"),
            status=ShiftStatus.ASSIGNED,
            timezone=self._validate_timezone(timezone),
            role=optional_text(role, "role"),
            location=optional_text(location, "location"),
            notes=optional_text(notes, "notes"),
        )
        staff = self._staff_in_org(caller, staff_id)
        new = replace(new, assigned_to=staff.user_id)

        shift = self._load(self._shifts.create(new))
        logger.info("Shift %s created for staff=%s by manager=%s", shift.shift_id, staff.user_id, caller.user_id)
        if notify:
            self._notify(
                staff.user_id,
                NotificationType.SHIFT_ASSIGNED,
                "New Shift Assigned",
                f"You have been assigned {self._describe(shift)}",
                shift.shift_id,
            )
        return shift

    def create_open_shift(
        self,
        caller: Caller,
        *,
        date,
        start_time: str,
        end_time: str,
        name: Optional[str] = None,
        role: Optional[str] = None,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        timezone: Optional[str] = None,
        now: datetime,
    ) -> Shift:
        self._gate.require_role(caller, Role.MANAGER)
        new = NewShift(
            organization_id=caller.organization_id,
            created_by=caller.user_id,
            name=optional_text(name, "name") or "Open Shift",
            assigned_to=None,
            date=require_date(date, "date"),
            start_time=require_hhmm(start_time, "start_time"),
            end_time=require_hhmm(end_time, "end_time"),
            status=ShiftStatus.OPEN,
            timezone=self._validate_timezone(timezone),
            role=optional_text(role, "role"),
            location=optional_text(location, "location"),
            notes=optional_text(notes, "notes"),
        )
        shift = self._load(self._shifts.create(new))
        logger.info("Open shift %s created by manager=%s", shift.shift_id, caller.user_id)
        return shift

    # ---- staff transitions ----------------------------------------------

    def claim_open_shift(self, caller: Caller, shift_id: int, *, now: datetime) -> Shift:
        self._gate.require_role(caller, Role.STAFF)
        shift = self._load(shift_id)
        if shift.organization_id != caller.organization_id:
            raise ForbiddenError("Forbidden: different organization")
        if shift.status != ShiftStatus.OPEN or not shift.is_open:
            raise ConflictError("Shift is no longer open for claiming", details={"status": shift.status.value})
        self._gate.require_shift(caller, shift, ShiftAction.CLAIM)

        claimed = self._commit(
            shift,
            replace(shift, assigned_to=caller.user_id, is_open=False, status=ShiftStatus.ASSIGNED),
        )
        logger.info("Shift %s claimed by staff=%s", shift.shift_id, caller.user_id)
        return claimed

    def clock_in(self, caller: Caller, shift_id: int, *, now: datetime) -> Shift:
        shift = self._load_for(caller, shift_id, ShiftAction.CLOCK_IN)
        if shift.clock_in_time is not None:
            raise PreconditionError("You have already clocked in")
        ensure_status_transition(shift.status, ShiftStatus.IN_PROGRESS)

        window = clock_in_window(self._start_of(shift))
        if not window.contains(now):
            raise ForbiddenError(
                "Clock-in is only allowed from 1 hour before until 2 hours after the shift starts",
                details={
                    "window_opens": window.opens.isoformat(),
                    "window_closes": window.closes.isoformat(),
                },
            )

        updated = self._commit(shift, replace(shift, clock_in_time=now, status=ShiftStatus.IN_PROGRESS))
        logger.info("Shift %s clock-in staff=%s at=%s", shift.shift_id, caller.user_id, now.isoformat())
        return updated

    def clock_out(self, caller: Caller, shift_id: int, *, now: datetime) -> Shift:
        shift = self._load_for(caller, shift_id, ShiftAction.CLOCK_OUT)
        if shift.clock_in_time is None:
            raise PreconditionError("Cannot clock out: clock in before clocking out.")
        if shift.clock_out_time is not None:
            raise PreconditionError("You have already clocked out")

        remaining = minutes_until_clock_out(now, shift.clock_in_time)
        if remaining > 0:
            raise ForbiddenError(
                f"You can clock out in {remaining} minutes",
                details={"minutes_remaining": remaining},
            )
        ensure_status_transition(shift.status, ShiftStatus.COMPLETED)

        updated = self._commit(
            shift,
            replace(
                shift,
                clock_out_time=now,
                worked_hours=hours_between(shift.clock_in_time, now),
                status=ShiftStatus.COMPLETED,
                approval_status=ApprovalStatus.PENDING,
            ),
        )
        logger.info("Shift %s clock-out staff=%s hours=%s", shift.shift_id, caller.user_id, updated.worked_hours)
        return updated

    def mark_completed(
        self,
        caller: Caller,
        shift_id: int,
        *,
        completion_notes: Optional[str] = None,
        now: datetime,
    ) -> Shift:
        shift = self._load_for(caller, shift_id, ShiftAction.COMPLETE)
        if shift.status not in (ShiftStatus.ASSIGNED, ShiftStatus.IN_PROGRESS):
            raise PreconditionError(
                "Only assigned or in-progress shifts can be completed",
                details={"status": shift.status.value},
            )

        changed = replace(
            shift,
            notes=_append_note(shift.notes, optional_text(completion_notes, "completion_notes")),
            status=ShiftStatus.COMPLETED,
            approval_status=ApprovalStatus.PENDING,
        )
        if shift.clock_in_time is not None:
            clock_out = shift.clock_out_time or now
            if clock_out <= shift.clock_in_time:
                raise PreconditionError("Clock-out must be after clock-in")
            changed = replace(
                changed,
                clock_out_time=clock_out,
                worked_hours=hours_between(shift.clock_in_time, clock_out),
            )

        updated = self._commit(shift, changed)
        logger.info("Shift %s marked completed by user=%s", shift.shift_id, caller.user_id)
        return updated

    # ---- manager transitions --------------------------------------------

    def review_shift(
        self,
        caller: Caller,
        shift_id: int,
        *,
        decision: Union[str, ReviewDecision],
        reason: Optional[str] = None,
        now: datetime,
    ) -> Shift:
        verdict = _parse_decision(decision)
        shift = self._load_for(caller, shift_id, ShiftAction.REVIEW)
        ensure_reviewable(shift.status, shift.approval_status)

        if verdict == ReviewDecision.APPROVE:
            updated = self._commit(shift, replace(shift, approval_status=ApprovalStatus.APPROVED))
            logger.info("Shift %s approved by manager=%s", shift.shift_id, caller.user_id)
            return updated

        reason = require_non_empty(reason, "reason")
        ensure_status_transition(shift.status, ShiftStatus.ASSIGNED)
        note = f"[{now.isoformat()}] Rejected by manager: {reason}"
        updated = self._commit(
            shift,
            replace(
                shift,
                approval_status=ApprovalStatus.REJECTED,
                status=ShiftStatus.ASSIGNED,
                notes=_append_note(shift.notes, note),
            ),
        )
        logger.info("Shift %s rejected by manager=%s", shift.shift_id, caller.user_id)
        self._notify(
            updated.assigned_to,
            NotificationType.SHIFT_REJECTED,
            "Shift Rejected",
            f"Your completed shift {self._describe(updated)} was rejected: {reason}",
            updated.shift_id,
        )
        return updated

    def update_shift(
        self,
        caller: Caller,
        shift_id: int,
        *,
        name=UNSET,
        date=UNSET,
        start_time=UNSET,
        end_time=UNSET,
        timezone=UNSET,
        role=UNSET,
        location=UNSET,
        notes=UNSET,
        assigned_to=UNSET,
        now: datetime,
    ) -> Shift:
        shift = self._load_for(caller, shift_id, ShiftAction.UPDATE)
        if shift.status not in (ShiftStatus.OPEN, ShiftStatus.ASSIGNED):
            raise PreconditionError(
                "Only open or assigned shifts can be edited",
                details={"status": shift.status.value},
            )

        changes: dict = {}
        if name is not UNSET:
            changes["name"] = require_non_empty(name, "name")
        if date is not UNSET:
            changes["date"] = require_date(date, "date")
        if start_time is not UNSET:
            changes["start_time"] = require_hhmm(start_time, "start_time")
        if end_time is not UNSET:
            changes["end_time"] = require_hhmm(end_time, "end_time")
        if timezone is not UNSET:
            changes["timezone"] = self._validate_timezone(timezone)
        if role is not UNSET:
            changes["role"] = optional_text(role, "role")
        if location is not UNSET:
            changes["location"] = optional_text(location, "location")
        if notes is not UNSET:
            changes["notes"] = optional_text(notes, "notes")

        new_assignee = shift.assigned_to
        if assigned_to is not UNSET:
            if assigned_to in (None, ""):
                new_assignee = None
                if shift.status != ShiftStatus.OPEN:
                    ensure_status_transition(shift.status, ShiftStatus.OPEN)
                changes.update(assigned_to=None, is_open=True, status=ShiftStatus.OPEN)
            else:
                new_assignee = self._staff_in_org(caller, assigned_to, "assigned_to").user_id
                if shift.status != ShiftStatus.ASSIGNED:
                    ensure_status_transition(shift.status, ShiftStatus.ASSIGNED)
                changes.update(assigned_to=new_assignee, is_open=False, status=ShiftStatus.ASSIGNED)
            if new_assignee != shift.assigned_to:
                # time tracking belongs to the previous assignee
                changes.update(
                    clock_in_time=None,
                    clock_out_time=None,
                    worked_hours=0.0,
                    approval_status=ApprovalStatus.PENDING,
                )

        schedule_changed = any(
            f in changes and changes[f] != getattr(shift, f) for f in _SCHEDULE_FIELDS
        )
        if schedule_changed:
            changes["reminder_sent"] = False

        if not changes:
            return shift
        updated = self._commit(shift, replace(shift, **changes))
        logger.info("Shift %s updated by manager=%s fields=%s", shift.shift_id, caller.user_id, sorted(changes))

        previous = shift.assigned_to
        if new_assignee != previous:
            self._notify(
                new_assignee,
                NotificationType.SHIFT_ASSIGNED,
                "New Shift Assigned",
                f"You have been assigned {self._describe(updated)}",
                updated.shift_id,
            )
            self._notify(
                previous,
                NotificationType.SHIFT_CANCELLED,
                "Shift Unassigned",
                f"You are no longer assigned to {self._describe(shift)}",
                updated.shift_id,
            )
        elif schedule_changed:
            self._notify(
                updated.assigned_to,
                NotificationType.SHIFT_UPDATED,
                "Shift Updated",
                f"Your shift was rescheduled to {self._describe(updated)}",
                updated.shift_id,
            )
        return updated

    def delete_shift(self, caller: Caller, shift_id: int, *, now: datetime) -> None:
        shift = self._load_for(caller, shift_id, ShiftAction.DELETE)
        if not self._shifts.delete(shift.shift_id, expected_version=shift.version):
            raise ConflictError("Shift was changed by someone else, reload and try again")
        logger.info("Shift %s deleted by user=%s", shift.shift_id, caller.user_id)
        if caller.is_manager:
            self._notify(
                shift.assigned_to,
                NotificationType.SHIFT_CANCELLED,
                "Shift Cancelled",
                f"Your shift {self._describe(shift)} was removed",
                shift.shift_id,
            )

    def cancel_shift(
        self,
        caller: Caller,
        shift_id: int,
        *,
        reason: Optional[str] = None,
        now: datetime,
    ) -> Shift:
        shift = self._load_for(caller, shift_id, ShiftAction.CANCEL)
        ensure_status_transition(shift.status, ShiftStatus.CANCELLED)
        reason = optional_text(reason, "reason")
        note = f"[{now.isoformat()}] Cancelled by manager" + (f": {reason}" if reason else "")
        updated = self._commit(
            shift,
            replace(shift, status=ShiftStatus.CANCELLED, is_open=False, notes=_append_note(shift.notes, note)),
        )
        logger.info("Shift %s cancelled by manager=%s", shift.shift_id, caller.user_id)
        self._notify(
            updated.assigned_to,
            NotificationType.SHIFT_CANCELLED,
            "Shift Cancelled",
            f"Your shift {self._describe(updated)} was cancelled" + (f": {reason}" if reason else ""),
            updated.shift_id,
        )
        return updated

    def mark_missed(self, caller: Caller, shift_id: int, *, now: datetime) -> Shift:
        shift = self._load_for(caller, shift_id, ShiftAction.MARK_MISSED)
        if shift.clock_in_time is not None:
            raise PreconditionError("Shift was clocked in and cannot be marked missed")
        ensure_status_transition(shift.status, ShiftStatus.MISSED)
        window = clock_in_window(self._start_of(shift))
        if now <= window.closes:
            raise PreconditionError(
                "Shift can only be marked missed after the clock-in window closes",
                details={"window_closes": window.closes.isoformat()},
            )
        updated = self._commit(shift, replace(shift, status=ShiftStatus.MISSED))
        logger.info("Shift %s marked missed by manager=%s", shift.shift_id, caller.user_id)
        return updated

    # ---- queries --------------------------------------------------------

    def get_shift(self, caller: Caller, shift_id: int) -> Shift:
        return self._load_for(caller, shift_id, ShiftAction.VIEW)

    def list_organization_shifts(
        self,
        caller: Caller,
        *,
        status: Optional[ShiftStatus] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[Shift]:
        self._gate.require_role(caller, Role.MANAGER)
        return self._shifts.list_for_organization(caller.organization_id, status=status, limit=limit)

    def list_my_shifts(self, caller: Caller) -> Sequence[Shift]:
        self._gate.require_role(caller, Role.STAFF)
        return self._shifts.list_for_assignee(user_id=caller.user_id, organization_id=caller.organization_id)

    def list_open_shifts(self, caller: Caller) -> Sequence[Shift]:
        return self._shifts.list_open(caller.organization_id)
