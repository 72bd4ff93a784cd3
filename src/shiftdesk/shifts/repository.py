from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import ShiftStatus
from .model import NewShift, Shift


class ShiftRepository(Protocol):
    def create(self, new: NewShift) -> int:
        raise NotImplementedError

    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        raise NotImplementedError

    def update(self, shift: Shift, *, expected_version: int) -> bool:
        """Write every mutable field of ``shift`` if the stored version still
        equals ``expected_version``; bump the version.

        Returns False when another writer got there first (or the row is gone).
        """

        raise NotImplementedError

    def delete(self, shift_id: int, *, expected_version: int) -> bool:
        raise NotImplementedError

    def list_for_organization(
        self,
        organization_id: int,
        *,
        status: Optional[ShiftStatus] = None,
        limit: int = 200,
    ) -> Sequence[Shift]:
        raise NotImplementedError

    def list_for_assignee(self, *, user_id: int, organization_id: int) -> Sequence[Shift]:
        raise NotImplementedError

    def list_open(self, organization_id: int) -> Sequence[Shift]:
        raise NotImplementedError

    def list_completed(
        self,
        *,
        organization_id: int,
        start: date,
        end: date,
        staff_id: Optional[int] = None,
    ) -> Sequence[Shift]:
        raise NotImplementedError

    def list_reminder_candidates(self, *, start: date, end: date) -> Sequence[Shift]:
        """Assigned shifts dated within [start, end] whose reminder is not sent."""

        raise NotImplementedError

    def mark_reminder_sent(self, shift_id: int) -> bool:
        """Flip reminder_sent 0 -> 1. False if it was already set."""

        raise NotImplementedError
