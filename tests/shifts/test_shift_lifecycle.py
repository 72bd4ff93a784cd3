from __future__ import annotations

from datetime import timedelta

import pytest

from shiftdesk.core.enums import ApprovalStatus, NotificationType, ShiftStatus
from shiftdesk.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from shiftdesk.shifts.service import ShiftService
from tests.conftest import ALICE, BOB, NOW, SHIFT_DAY
from tests.fakes import FailingNotifier

START = NOW  # the default shift starts at 09:00 Nairobi == NOW


# ---- creation -----------------------------------------------------------


def test_create_assigned_shift_notifies_staff(shift_service, manager, notifier):
    shift = shift_service.create_assigned_shift(
        manager,
        staff_id=ALICE.user_id,
        name="Night ward",
        date="2026-03-05",
        start_time="22:00",
        end_time="06:00",
        location="Ward 3",
        now=NOW,
    )

    assert shift.status == ShiftStatus.ASSIGNED
    assert shift.is_open is False
    assert shift.assigned_to == ALICE.user_id
    assert shift.approval_status == ApprovalStatus.PENDING
    [event] = notifier.of_type(NotificationType.SHIFT_ASSIGNED)
    assert event.recipient_id == ALICE.user_id
    assert event.related_id == shift.shift_id


def test_create_assigned_shift_requires_fields(shift_service, manager):
    with pytest.raises(ValidationError) as exc:
        shift_service.create_assigned_shift(
            manager,
            staff_id=ALICE.user_id,
            name="",
            date="2026-03-05",
            start_time="09:00",
            end_time="17:00",
            now=NOW,
        )
    assert exc.value.details["field"] == "name"

    with pytest.raises(ValidationError):
        shift_service.create_assigned_shift(
            manager,
            staff_id=ALICE.user_id,
            name="Ward",
            date="2026-03-05",
            start_time="9am",
            end_time="17:00",
            now=NOW,
        )


def test_create_assigned_shift_rejects_staff_from_other_organization(shift_service, manager):
    with pytest.raises(NotFoundError):
        shift_service.create_assigned_shift(
            manager,
            staff_id=11,
            name="Ward",
            date="2026-03-05",
            start_time="09:00",
            end_time="17:00",
            now=NOW,
        )


def test_staff_cannot_create_shifts(shift_service, alice):
    with pytest.raises(ForbiddenError):
        shift_service.create_open_shift(alice, date="2026-03-05", start_time="09:00", end_time="17:00", now=NOW)


def test_create_open_shift(shift_service, manager):
    shift = shift_service.create_open_shift(
        manager, date="2026-03-05", start_time="09:00", end_time="17:00", role="nurse", now=NOW
    )

    assert shift.status == ShiftStatus.OPEN
    assert shift.is_open is True
    assert shift.assigned_to is None
    assert shift_service.list_open_shifts(manager) == [shift]


# ---- claiming -----------------------------------------------------------


def test_claim_open_shift(shift_service, make_shift, alice):
    open_shift = make_shift(assigned_to=None, is_open=True, status=ShiftStatus.OPEN)

    claimed = shift_service.claim_open_shift(alice, open_shift.shift_id, now=NOW)

    assert claimed.status == ShiftStatus.ASSIGNED
    assert claimed.assigned_to == ALICE.user_id
    assert claimed.is_open is False
    assert claimed.version == open_shift.version + 1


def test_second_claim_conflicts(shift_service, make_shift, alice, bob):
    open_shift = make_shift(assigned_to=None, is_open=True, status=ShiftStatus.OPEN)
    shift_service.claim_open_shift(alice, open_shift.shift_id, now=NOW)

    with pytest.raises(ConflictError):
        shift_service.claim_open_shift(bob, open_shift.shift_id, now=NOW)


def test_concurrent_claims_only_one_wins(shifts_repo, members_repo, organizations_repo, notifier, make_shift, alice, bob):
    open_shift = make_shift(assigned_to=None, is_open=True, status=ShiftStatus.OPEN)
    service = ShiftService(shifts_repo, members_repo, organizations_repo, notifier)

    # Bob's claim commits between Alice's read and Alice's write.
    original_update = shifts_repo.update
    fired = []

    def racing_update(shift, *, expected_version):
        if not fired:
            fired.append(True)
            service.claim_open_shift(bob, open_shift.shift_id, now=NOW)
        return original_update(shift, expected_version=expected_version)

    shifts_repo.update = racing_update

    with pytest.raises(ConflictError):
        service.claim_open_shift(alice, open_shift.shift_id, now=NOW)

    stored = shifts_repo.get_by_id(open_shift.shift_id)
    assert stored.assigned_to == BOB.user_id
    assert stored.version == open_shift.version + 1


def test_manager_cannot_claim(shift_service, make_shift, manager):
    open_shift = make_shift(assigned_to=None, is_open=True, status=ShiftStatus.OPEN)

    with pytest.raises(ForbiddenError):
        shift_service.claim_open_shift(manager, open_shift.shift_id, now=NOW)


# ---- clock in / out -----------------------------------------------------


def test_clock_in_at_window_edges(shift_service, make_shift, alice):
    early = make_shift()
    late = make_shift()

    first = shift_service.clock_in(alice, early.shift_id, now=START - timedelta(hours=1))
    second = shift_service.clock_in(alice, late.shift_id, now=START + timedelta(hours=2))

    assert first.status == ShiftStatus.IN_PROGRESS
    assert first.clock_in_time == START - timedelta(hours=1)
    assert second.status == ShiftStatus.IN_PROGRESS


@pytest.mark.parametrize("offset", [timedelta(hours=-1, seconds=-1), timedelta(hours=2, seconds=1)])
def test_clock_in_outside_window_is_forbidden(shift_service, make_shift, alice, offset):
    shift = make_shift()

    with pytest.raises(ForbiddenError) as exc:
        shift_service.clock_in(alice, shift.shift_id, now=START + offset)

    assert exc.value.details["window_opens"] == (START - timedelta(hours=1)).isoformat()
    assert exc.value.details["window_closes"] == (START + timedelta(hours=2)).isoformat()
    assert shift_service.get_shift(alice, shift.shift_id).clock_in_time is None


def test_clock_in_uses_shift_timezone(shift_service, make_shift, alice):
    # 09:00 London on 2026-03-02 is 09:00 UTC, three hours after NOW.
    shift = make_shift(timezone="Europe/London")

    with pytest.raises(ForbiddenError):
        shift_service.clock_in(alice, shift.shift_id, now=NOW)

    updated = shift_service.clock_in(alice, shift.shift_id, now=NOW + timedelta(hours=2))
    assert updated.status == ShiftStatus.IN_PROGRESS


def test_only_the_assignee_can_clock_in(shift_service, make_shift, bob, manager):
    shift = make_shift()

    with pytest.raises(ForbiddenError) as exc:
        shift_service.clock_in(bob, shift.shift_id, now=START)
    assert "not assigned" in exc.value.message

    with pytest.raises(ForbiddenError):
        shift_service.clock_in(manager, shift.shift_id, now=START)


def test_unassigned_shift_can_never_be_clocked(shift_service, make_shift, alice):
    open_shift = make_shift(assigned_to=None, is_open=True, status=ShiftStatus.OPEN)

    with pytest.raises(ForbiddenError):
        shift_service.clock_in(alice, open_shift.shift_id, now=START)
    with pytest.raises(ForbiddenError):
        shift_service.clock_out(alice, open_shift.shift_id, now=START)


def test_clock_in_twice_is_rejected(shift_service, make_shift, alice):
    shift = make_shift()
    shift_service.clock_in(alice, shift.shift_id, now=START)

    with pytest.raises(PreconditionError):
        shift_service.clock_in(alice, shift.shift_id, now=START + timedelta(minutes=1))


def test_clock_out_minimum_duration(shift_service, make_shift, alice):
    shift = make_shift()
    shift_service.clock_in(alice, shift.shift_id, now=START)

    with pytest.raises(ForbiddenError) as exc:
        shift_service.clock_out(alice, shift.shift_id, now=START + timedelta(minutes=10))
    assert exc.value.details["minutes_remaining"] == 5

    with pytest.raises(ForbiddenError) as exc:
        shift_service.clock_out(alice, shift.shift_id, now=START + timedelta(minutes=14, seconds=59))
    assert exc.value.details["minutes_remaining"] == 1

    done = shift_service.clock_out(alice, shift.shift_id, now=START + timedelta(minutes=15))
    assert done.status == ShiftStatus.COMPLETED
    assert done.approval_status == ApprovalStatus.PENDING
    assert done.worked_hours == 0.25
    assert done.clock_out_time > done.clock_in_time


def test_clock_out_requires_clock_in(shift_service, make_shift, alice):
    shift = make_shift()

    with pytest.raises(PreconditionError):
        shift_service.clock_out(alice, shift.shift_id, now=START + timedelta(hours=1))


def test_clock_out_twice_is_rejected(shift_service, make_shift, alice):
    shift = make_shift()
    shift_service.clock_in(alice, shift.shift_id, now=START)
    shift_service.clock_out(alice, shift.shift_id, now=START + timedelta(hours=8))

    with pytest.raises(PreconditionError):
        shift_service.clock_out(alice, shift.shift_id, now=START + timedelta(hours=9))


# ---- completion and review ----------------------------------------------


def test_full_lifecycle_to_approval(shift_service, make_shift, alice, manager):
    shift = make_shift()
    shift_service.clock_in(alice, shift.shift_id, now=START - timedelta(minutes=5))
    shift_service.clock_out(alice, shift.shift_id, now=START + timedelta(hours=7, minutes=55))

    approved = shift_service.review_shift(manager, shift.shift_id, decision="approve", now=NOW)

    assert approved.status == ShiftStatus.COMPLETED
    assert approved.approval_status == ApprovalStatus.APPROVED
    assert approved.worked_hours == 8.0


def test_review_requires_completed_shift(shift_service, make_shift, manager):
    shift = make_shift()

    with pytest.raises(PreconditionError):
        shift_service.review_shift(manager, shift.shift_id, decision="approve", now=NOW)


def test_review_is_manager_only(shift_service, make_shift, alice):
    shift = make_shift(status=ShiftStatus.COMPLETED)

    with pytest.raises(ForbiddenError):
        shift_service.review_shift(alice, shift.shift_id, decision="approve", now=NOW)


def test_reject_requires_reason(shift_service, make_shift, manager):
    shift = make_shift(status=ShiftStatus.COMPLETED)

    with pytest.raises(ValidationError):
        shift_service.review_shift(manager, shift.shift_id, decision="reject", reason="  ", now=NOW)


def test_reject_sends_shift_back_for_rework(shift_service, make_shift, manager, alice, notifier):
    shift = make_shift(status=ShiftStatus.COMPLETED, notes="Handover done")

    rejected = shift_service.review_shift(manager, shift.shift_id, decision="reject", reason="Missing sign-off", now=NOW)

    assert rejected.status == ShiftStatus.ASSIGNED
    assert rejected.approval_status == ApprovalStatus.REJECTED
    assert rejected.notes.startswith("Handover done\n")
    assert f"[{NOW.isoformat()}] Rejected by manager: Missing sign-off" in rejected.notes
    [event] = notifier.of_type(NotificationType.SHIFT_REJECTED)
    assert event.recipient_id == ALICE.user_id

    # rework, then approve
    redone = shift_service.mark_completed(alice, shift.shift_id, completion_notes="Signed off", now=NOW)
    assert redone.approval_status == ApprovalStatus.PENDING
    approved = shift_service.review_shift(manager, shift.shift_id, decision="approve", now=NOW)
    assert approved.approval_status == ApprovalStatus.APPROVED


def test_approved_shift_cannot_be_reviewed_again(shift_service, make_shift, manager):
    shift = make_shift(status=ShiftStatus.COMPLETED)
    shift_service.review_shift(manager, shift.shift_id, decision="approve", now=NOW)

    with pytest.raises(PreconditionError):
        shift_service.review_shift(manager, shift.shift_id, decision="reject", reason="late", now=NOW)


def test_unknown_review_decision(shift_service, make_shift, manager):
    shift = make_shift(status=ShiftStatus.COMPLETED)

    with pytest.raises(ValidationError):
        shift_service.review_shift(manager, shift.shift_id, decision="maybe", now=NOW)


def test_mark_completed_without_clock_in_keeps_zero_hours(shift_service, make_shift, manager):
    shift = make_shift(notes="Bring badge")

    done = shift_service.mark_completed(manager, shift.shift_id, completion_notes="Covered by phone", now=NOW)

    assert done.status == ShiftStatus.COMPLETED
    assert done.worked_hours == 0.0
    assert done.clock_out_time is None
    assert done.notes == "Bring badge\nCovered by phone"


def test_mark_completed_closes_open_clock(shift_service, make_shift, alice):
    shift = make_shift()
    shift_service.clock_in(alice, shift.shift_id, now=START)

    done = shift_service.mark_completed(alice, shift.shift_id, now=START + timedelta(hours=6, minutes=30))

    assert done.clock_out_time == START + timedelta(hours=6, minutes=30)
    assert done.worked_hours == 6.5


def test_mark_completed_rejects_finished_shift(shift_service, make_shift, alice):
    shift = make_shift(status=ShiftStatus.CANCELLED)

    with pytest.raises(PreconditionError):
        shift_service.mark_completed(alice, shift.shift_id, now=NOW)


# ---- update / delete / cancel / missed ----------------------------------


def test_reassign_notifies_new_and_previous_assignee(shift_service, make_shift, manager, notifier):
    shift = make_shift()

    updated = shift_service.update_shift(manager, shift.shift_id, assigned_to=BOB.user_id, now=NOW)

    assert updated.assigned_to == BOB.user_id
    assert [e.recipient_id for e in notifier.of_type(NotificationType.SHIFT_ASSIGNED)] == [BOB.user_id]
    assert [e.recipient_id for e in notifier.of_type(NotificationType.SHIFT_CANCELLED)] == [ALICE.user_id]


def test_clearing_assignee_reopens_shift(shift_service, make_shift, manager):
    shift = make_shift()

    updated = shift_service.update_shift(manager, shift.shift_id, assigned_to=None, now=NOW)

    assert updated.status == ShiftStatus.OPEN
    assert updated.is_open is True
    assert updated.assigned_to is None


def test_assigning_open_shift(shift_service, make_shift, manager):
    shift = make_shift(assigned_to=None, is_open=True, status=ShiftStatus.OPEN)

    updated = shift_service.update_shift(manager, shift.shift_id, assigned_to=ALICE.user_id, now=NOW)

    assert updated.status == ShiftStatus.ASSIGNED
    assert updated.is_open is False


def _rejected_after_work(shift_service, make_shift, manager, alice):
    shift = make_shift()
    shift_service.clock_in(alice, shift.shift_id, now=START)
    shift_service.clock_out(alice, shift.shift_id, now=START + timedelta(hours=4))
    return shift_service.review_shift(manager, shift.shift_id, decision="reject", reason="Wrong ward", now=NOW)


def test_reassigning_rejected_shift_clears_time_tracking(shift_service, make_shift, manager, alice, bob):
    rejected = _rejected_after_work(shift_service, make_shift, manager, alice)
    assert rejected.clock_in_time is not None

    updated = shift_service.update_shift(manager, rejected.shift_id, assigned_to=BOB.user_id, now=NOW)

    assert updated.assigned_to == BOB.user_id
    assert (updated.clock_in_time, updated.clock_out_time, updated.worked_hours) == (None, None, 0.0)
    assert updated.approval_status == ApprovalStatus.PENDING
    clocked = shift_service.clock_in(bob, updated.shift_id, now=START + timedelta(hours=1))
    assert clocked.status == ShiftStatus.IN_PROGRESS


def test_reopening_rejected_shift_clears_time_tracking(shift_service, make_shift, manager, alice):
    rejected = _rejected_after_work(shift_service, make_shift, manager, alice)

    reopened = shift_service.update_shift(manager, rejected.shift_id, assigned_to=None, now=NOW)

    assert reopened.status == ShiftStatus.OPEN
    assert (reopened.clock_in_time, reopened.clock_out_time, reopened.worked_hours) == (None, None, 0.0)


def test_keeping_the_same_assignee_keeps_time_tracking(shift_service, make_shift, manager, alice):
    rejected = _rejected_after_work(shift_service, make_shift, manager, alice)

    updated = shift_service.update_shift(manager, rejected.shift_id, assigned_to=ALICE.user_id, location="Ward 2", now=NOW)

    assert updated.clock_in_time == START
    assert updated.worked_hours == 4.0
    assert updated.approval_status == ApprovalStatus.REJECTED


@pytest.mark.parametrize("staff_id", [None, "", "abc", True, 2.5])
def test_malformed_staff_id_is_a_validation_error(shift_service, manager, staff_id):
    with pytest.raises(ValidationError) as exc:
        shift_service.create_assigned_shift(
            manager,
            staff_id=staff_id,
            name="Ward",
            date="2026-03-05",
            start_time="09:00",
            end_time="17:00",
            now=NOW,
        )
    assert exc.value.details == {"field": "staff_id"}


def test_numeric_string_staff_id_is_accepted(shift_service, manager):
    shift = shift_service.create_assigned_shift(
        manager,
        staff_id=str(ALICE.user_id),
        name="Ward",
        date="2026-03-05",
        start_time="09:00",
        end_time="17:00",
        now=NOW,
    )

    assert shift.assigned_to == ALICE.user_id


def test_malformed_assignee_on_update(shift_service, make_shift, manager):
    shift = make_shift()

    with pytest.raises(ValidationError) as exc:
        shift_service.update_shift(manager, shift.shift_id, assigned_to="bob", now=NOW)
    assert exc.value.details == {"field": "assigned_to"}


@pytest.mark.parametrize("field", ["notes", "role", "location"])
def test_non_text_optional_fields_are_rejected(shift_service, manager, field):
    with pytest.raises(ValidationError) as exc:
        shift_service.create_open_shift(
            manager,
            date="2026-03-05",
            start_time="09:00",
            end_time="17:00",
            now=NOW,
            **{field: 5},
        )
    assert exc.value.details == {"field": field}


def test_schedule_change_resets_reminder_and_notifies(shift_service, make_shift, manager, notifier):
    shift = make_shift(reminder_sent=True)

    updated = shift_service.update_shift(manager, shift.shift_id, start_time="10:00", now=NOW)

    assert updated.start_time == "10:00"
    assert updated.reminder_sent is False
    [event] = notifier.of_type(NotificationType.SHIFT_UPDATED)
    assert event.recipient_id == ALICE.user_id


def test_non_schedule_update_keeps_reminder_flag(shift_service, make_shift, manager, notifier):
    shift = make_shift(reminder_sent=True)

    updated = shift_service.update_shift(manager, shift.shift_id, location="Ward 9", now=NOW)

    assert updated.location == "Ward 9"
    assert updated.reminder_sent is True
    assert notifier.events == []


def test_completed_shift_cannot_be_edited(shift_service, make_shift, manager):
    shift = make_shift(status=ShiftStatus.COMPLETED)

    with pytest.raises(PreconditionError):
        shift_service.update_shift(manager, shift.shift_id, name="Renamed", now=NOW)


def test_staff_cannot_update(shift_service, make_shift, alice):
    shift = make_shift()

    with pytest.raises(ForbiddenError):
        shift_service.update_shift(alice, shift.shift_id, name="Mine now", now=NOW)


def test_assignee_may_delete_without_notification(shift_service, make_shift, shifts_repo, alice, notifier):
    shift = make_shift()

    shift_service.delete_shift(alice, shift.shift_id, now=NOW)

    assert shifts_repo.get_by_id(shift.shift_id) is None
    assert notifier.events == []


def test_manager_delete_notifies_assignee(shift_service, make_shift, manager, notifier):
    shift = make_shift()

    shift_service.delete_shift(manager, shift.shift_id, now=NOW)

    [event] = notifier.of_type(NotificationType.SHIFT_CANCELLED)
    assert event.recipient_id == ALICE.user_id


def test_other_staff_cannot_delete(shift_service, make_shift, bob):
    shift = make_shift()

    with pytest.raises(ForbiddenError):
        shift_service.delete_shift(bob, shift.shift_id, now=NOW)


def test_cancel_shift(shift_service, make_shift, manager, notifier):
    shift = make_shift()

    cancelled = shift_service.cancel_shift(manager, shift.shift_id, reason="Ward closed", now=NOW)

    assert cancelled.status == ShiftStatus.CANCELLED
    assert "Cancelled by manager: Ward closed" in cancelled.notes
    assert len(notifier.of_type(NotificationType.SHIFT_CANCELLED)) == 1
    with pytest.raises(PreconditionError):
        shift_service.cancel_shift(manager, shift.shift_id, now=NOW)


def test_mark_missed_only_after_window_closes(shift_service, make_shift, manager):
    shift = make_shift()

    with pytest.raises(PreconditionError):
        shift_service.mark_missed(manager, shift.shift_id, now=START + timedelta(hours=2))

    missed = shift_service.mark_missed(manager, shift.shift_id, now=START + timedelta(hours=2, seconds=1))
    assert missed.status == ShiftStatus.MISSED


def test_clocked_in_shift_cannot_be_missed(shift_service, make_shift, manager, alice):
    shift = make_shift()
    shift_service.clock_in(alice, shift.shift_id, now=START)

    with pytest.raises(PreconditionError):
        shift_service.mark_missed(manager, shift.shift_id, now=START + timedelta(hours=5))


# ---- scope and resilience -----------------------------------------------


def test_other_organization_is_forbidden(shift_service, make_shift, foreign_manager):
    shift = make_shift()

    with pytest.raises(ForbiddenError) as exc:
        shift_service.get_shift(foreign_manager, shift.shift_id)
    assert "different organization" in exc.value.message


def test_missing_shift(shift_service, manager):
    with pytest.raises(NotFoundError):
        shift_service.get_shift(manager, 999)


def test_notifier_failure_does_not_fail_transition(shifts_repo, members_repo, organizations_repo, manager):
    failing = FailingNotifier()
    service = ShiftService(shifts_repo, members_repo, organizations_repo, failing)

    shift = service.create_assigned_shift(
        manager,
        staff_id=ALICE.user_id,
        name="Ward",
        date=SHIFT_DAY,
        start_time="09:00",
        end_time="17:00",
        now=NOW,
    )

    assert failing.attempts == 1
    assert shifts_repo.get_by_id(shift.shift_id).status == ShiftStatus.ASSIGNED


def test_list_queries_are_scoped(shift_service, make_shift, manager, alice, bob):
    mine = make_shift()
    make_shift(assigned_to=BOB.user_id)
    make_shift(organization_id=2, assigned_to=11)

    assert shift_service.list_my_shifts(alice) == [mine]
    assert len(shift_service.list_organization_shifts(manager)) == 2
    with pytest.raises(ForbiddenError):
        shift_service.list_organization_shifts(bob)
