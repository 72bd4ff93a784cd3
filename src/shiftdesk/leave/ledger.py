"""Annual-leave balance ledger.

Balances are validated here but deducted only by the repository, inside
the same transaction that approves the request.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from ..access.gate import ApprovalGate, Caller
from ..common.datetime_utils import local_today, resolve_zone
from ..common.validators import require_int, require_non_negative
from ..core.constants import DEFAULT_ANNUAL_LEAVE_DAYS, DEFAULT_TIMEZONE
from ..core.enums import LeaveStatus, Role
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..users.organization_repository import OrganizationRepository
from ..users.repository import MemberRepository
from .model import LeaveBalance
from .repository import LeaveRepository

logger = logging.getLogger(__name__)


class LeaveLedger:
    def __init__(
        self,
        leaves: LeaveRepository,
        members: MemberRepository,
        organizations: OrganizationRepository,
        *,
        gate: Optional[ApprovalGate] = None,
        default_annual_days: float = DEFAULT_ANNUAL_LEAVE_DAYS,
        default_timezone: str = DEFAULT_TIMEZONE,
    ):
        self._leaves = leaves
        self._members = members
        self._organizations = organizations
        self._gate = gate or ApprovalGate()
        self._default_annual_days = float(default_annual_days)
        self._default_timezone = default_timezone

    def today(self, organization_id: int, now: datetime) -> date:
        """``now`` as a calendar date in the organization's timezone."""
        org = self._organizations.get_by_id(int(organization_id))
        zone = resolve_zone(org.timezone if org else None, default=self._default_timezone)
        return local_today(now, zone)

    def balance_year(self, organization_id: int, now: datetime) -> int:
        return self.today(organization_id, now).year

    @staticmethod
    def charge_year(start_date: date) -> int:
        """Leave is charged to the balance of the year it starts in."""
        return start_date.year

    def _year(self, caller: Caller, now: datetime, year: Optional[int]) -> int:
        if year is None:
            return self.balance_year(caller.organization_id, now)
        year = require_int(year, "year")
        if not 1900 <= year <= 9999:
            raise ValidationError("year is out of range", details={"field": "year"})
        return year

    def get_or_init_balance(self, staff_id: int, year: int) -> LeaveBalance:
        balance = self._leaves.get_balance(int(staff_id), int(year))
        if balance is not None:
            return balance
        logger.info("Initialising leave balance staff=%s year=%s days=%s", staff_id, year, self._default_annual_days)
        return self._leaves.init_balance(int(staff_id), int(year), total_annual_leave=self._default_annual_days)

    @staticmethod
    def check_available(balance: LeaveBalance, days: float) -> None:
        if days > balance.remaining_annual_leave:
            raise ValidationError(
                "Insufficient leave balance",
                details={"remaining": balance.remaining_annual_leave, "requested": days},
            )

    def set_entitlement(
        self, caller: Caller, staff_id: int, days, *, now: datetime, year: Optional[int] = None
    ) -> LeaveBalance:
        staff = self._members.get_by_id(int(staff_id))
        if staff is None or not staff.is_staff:
            raise NotFoundError("Staff member not found")
        self._gate.require_manager_of(caller, staff)
        total = require_non_negative(days, "total_annual_leave")

        year = self._year(caller, now, year)
        current = self.get_or_init_balance(staff.user_id, year)
        if not self._leaves.set_entitlement(staff.user_id, year, total_annual_leave=total):
            raise ConflictError(
                "Entitlement is lower than leave already used",
                details={"used": current.used_annual_leave, "carry_over": current.carry_over},
            )
        logger.info("Leave entitlement set staff=%s year=%s days=%s by=%s", staff.user_id, year, total, caller.user_id)
        return self.get_or_init_balance(staff.user_id, year)

    def balance_summary(self, caller: Caller, *, now: datetime, year: Optional[int] = None) -> dict:
        self._gate.require_role(caller, Role.STAFF)
        year = self._year(caller, now, year)
        balance = self.get_or_init_balance(caller.user_id, year)
        return {
            **balance.to_dict(),
            "pending_annual_days": self._leaves.pending_annual_days(caller.user_id),
        }

    def team_balances(self, caller: Caller, *, now: datetime, year: Optional[int] = None) -> list[dict]:
        self._gate.require_role(caller, Role.MANAGER)
        year = self._year(caller, now, year)
        rows = []
        for staff in self._members.list_staff_for_manager(caller.user_id):
            if staff.organization_id != caller.organization_id:
                continue
            balance = self.get_or_init_balance(staff.user_id, year)
            rows.append(
                {
                    "staff_id": staff.user_id,
                    "name": staff.name,
                    "email": staff.email,
                    **balance.to_dict(),
                    "pending_annual_days": self._leaves.pending_annual_days(staff.user_id),
                    "pending_requests": len(
                        self._leaves.list_requests(staff_ids=[staff.user_id], status=LeaveStatus.PENDING)
                    ),
                }
            )
        return rows
