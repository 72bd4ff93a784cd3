from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from shiftdesk.access.gate import ApprovalGate, Caller
from shiftdesk.core.enums import ApprovalStatus, Role, ShiftStatus
from shiftdesk.leave.ledger import LeaveLedger
from shiftdesk.leave.service import LeaveService
from shiftdesk.shifts.service import ShiftService
from shiftdesk.users.model import Member
from shiftdesk.users.organization_model import Organization
from tests.fakes import FakeLeaveRepo, FakeMembersRepo, FakeOrganizationsRepo, FakeShiftsRepo, RecordingNotifier

# 09:00 in Nairobi (UTC+3, no DST)
NOW = datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)
SHIFT_DAY = date(2026, 3, 2)

MANAGER = Member(1, "Grace Manager", "grace@clinic.test", Role.MANAGER, 1)
ALICE = Member(2, "Alice Staff", "alice@clinic.test", Role.STAFF, 1, manager_id=1)
BOB = Member(3, "Bob Staff", "bob@clinic.test", Role.STAFF, 1, manager_id=1)
OTHER_MANAGER = Member(4, "Omar Manager", "omar@clinic.test", Role.MANAGER, 1)
FOREIGN_MANAGER = Member(10, "Fay Manager", "fay@elsewhere.test", Role.MANAGER, 2)
FOREIGN_STAFF = Member(11, "Finn Staff", "finn@elsewhere.test", Role.STAFF, 2, manager_id=10)


def caller_for(member: Member) -> Caller:
    return Caller(user_id=member.user_id, role=member.role, organization_id=member.organization_id)


@pytest.fixture
def manager():
    return caller_for(MANAGER)


@pytest.fixture
def alice():
    return caller_for(ALICE)


@pytest.fixture
def bob():
    return caller_for(BOB)


@pytest.fixture
def other_manager():
    return caller_for(OTHER_MANAGER)


@pytest.fixture
def foreign_manager():
    return caller_for(FOREIGN_MANAGER)


@pytest.fixture
def members_repo():
    return FakeMembersRepo([MANAGER, ALICE, BOB, OTHER_MANAGER, FOREIGN_MANAGER, FOREIGN_STAFF])


@pytest.fixture
def organizations_repo():
    return FakeOrganizationsRepo(
        [
            Organization(1, "Demo Clinic", timezone="Africa/Nairobi"),
            Organization(2, "Elsewhere", timezone=None),
        ]
    )


@pytest.fixture
def shifts_repo():
    return FakeShiftsRepo()


@pytest.fixture
def leave_repo():
    return FakeLeaveRepo()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def shift_service(shifts_repo, members_repo, organizations_repo, notifier):
    return ShiftService(shifts_repo, members_repo, organizations_repo, notifier, gate=ApprovalGate())


@pytest.fixture
def ledger(leave_repo, members_repo, organizations_repo):
    return LeaveLedger(leave_repo, members_repo, organizations_repo)


@pytest.fixture
def leave_service(leave_repo, members_repo, ledger, notifier):
    return LeaveService(leave_repo, members_repo, ledger, notifier)


@pytest.fixture
def make_shift(shifts_repo):
    """Store a shift directly, bypassing the service (defaults: Alice, 09:00-17:00 today)."""

    def _make(**overrides):
        fields = dict(
            organization_id=1,
            created_by=MANAGER.user_id,
            name="Morning ward",
            assigned_to=ALICE.user_id,
            is_open=False,
            date=SHIFT_DAY,
            start_time="09:00",
            end_time="17:00",
            status=ShiftStatus.ASSIGNED,
            approval_status=ApprovalStatus.PENDING,
        )
        fields.update(overrides)
        return shifts_repo.add(**fields)

    return _make
