"""Randomised workflow runs checking the ledger never drifts from approvals."""

from __future__ import annotations

import random
from datetime import date, timedelta

import pytest

from shiftdesk.core.enums import LeaveStatus, LeaveType
from shiftdesk.core.exceptions import DomainError
from tests.conftest import ALICE, BOB, NOW

YEAR = 2026
FIRST_DAY = date(2026, 3, 2)


def _random_range(rng):
    start = FIRST_DAY + timedelta(days=rng.randrange(0, 280))
    return start, start + timedelta(days=rng.randrange(0, 6))


def _approved_annual_days(leave_repo, staff_id):
    return sum(
        r.days_requested
        for r in leave_repo.requests.values()
        if r.staff_id == staff_id and r.leave_type == LeaveType.ANNUAL and r.status == LeaveStatus.APPROVED
    )


@pytest.mark.parametrize("seed", range(8))
def test_used_leave_matches_approved_requests(seed, leave_service, leave_repo, manager, alice, bob):
    rng = random.Random(seed)
    staff = {ALICE.user_id: alice, BOB.user_id: bob}
    leave_repo.init_balance(ALICE.user_id, YEAR, total_annual_leave=12)
    leave_repo.init_balance(BOB.user_id, YEAR, total_annual_leave=8)

    for _ in range(60):
        caller = staff[rng.choice(list(staff))]
        pending = [r for r in leave_repo.requests.values() if r.status == LeaveStatus.PENDING]
        op = rng.choice(["submit", "submit", "approve", "reject", "modify", "cancel", "assign"])
        try:
            if op == "submit":
                start, end = _random_range(rng)
                leave_service.submit(
                    caller, leave_type="annual", start_date=start, end_date=end, reason="random", now=NOW
                )
            elif op == "assign":
                start, end = _random_range(rng)
                leave_service.assign(
                    manager,
                    staff_id=caller.user_id,
                    leave_type="annual",
                    start_date=start,
                    end_date=end,
                    reason="random",
                    now=NOW,
                )
            elif pending:
                target = rng.choice(pending)
                if op == "cancel":
                    leave_service.cancel(staff[target.staff_id], target.request_id, now=NOW)
                else:
                    action = {"approve": "approved", "reject": "rejected", "modify": "modified"}[op]
                    leave_service.review(manager, target.request_id, action=action, now=NOW)
        except DomainError:
            pass

        for staff_id in staff:
            balance = leave_repo.get_balance(staff_id, YEAR)
            assert 0 <= balance.used_annual_leave <= balance.total_annual_leave + balance.carry_over
            assert balance.used_annual_leave == _approved_annual_days(leave_repo, staff_id)

    for staff_id in staff:
        blocking = sorted(
            (r for r in leave_repo.requests.values() if r.staff_id == staff_id and r.blocks_dates),
            key=lambda r: r.effective_start,
        )
        for earlier, later in zip(blocking, blocking[1:]):
            assert earlier.effective_end < later.effective_start
