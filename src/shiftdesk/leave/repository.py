from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import LeaveStatus
from .model import LeaveBalance, LeaveDecision, LeaveRequest, NewLeaveRequest


class LeaveRepository(Protocol):
    """Persistence for balances and requests.

    Every write is conditional. Methods that must keep the balance and a
    request consistent run as one transaction and raise ``ConflictError``
    (rolling everything back) when a guard fails.
    """

    def get_balance(self, staff_id: int, year: int) -> Optional[LeaveBalance]:
        raise NotImplementedError

    def init_balance(self, staff_id: int, year: int, *, total_annual_leave: float) -> LeaveBalance:
        """Create the row if missing (idempotent) and return the stored one."""

        raise NotImplementedError

    def set_entitlement(self, staff_id: int, year: int, *, total_annual_leave: float) -> bool:
        """Set the yearly total unless it would leave the remaining balance negative."""

        raise NotImplementedError

    def list_balances(self, staff_ids: Sequence[int], year: int) -> Sequence[LeaveBalance]:
        raise NotImplementedError

    def pending_annual_days(self, staff_id: int) -> int:
        raise NotImplementedError

    def get_request(self, request_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def list_requests(
        self,
        *,
        staff_ids: Optional[Sequence[int]] = None,
        status: Optional[LeaveStatus] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[LeaveRequest]:
        """Newest first. ``start``/``end`` keep requests whose dates touch the range."""

        raise NotImplementedError

    def create_request(self, new: NewLeaveRequest, *, year: int) -> int:
        """Insert a pending request.

        The staff's balance row for ``year`` is locked first so concurrent
        submissions of one staff serialize; an overlapping pending/approved
        request raises ``ConflictError``.
        """

        raise NotImplementedError

    def create_approved_and_commit(
        self,
        new: NewLeaveRequest,
        *,
        year: int,
        reviewed_by: int,
        comments: str,
    ) -> int:
        """Insert an already approved request and, for annual leave, deduct it."""

        raise NotImplementedError

    def decide(self, request_id: int, decision: LeaveDecision) -> bool:
        """Apply ``decision`` if the request is still pending."""

        raise NotImplementedError

    def approve_and_commit(self, request: LeaveRequest, decision: LeaveDecision, *, year: int) -> None:
        """Approve a pending request and deduct annual days in one transaction."""

        raise NotImplementedError
