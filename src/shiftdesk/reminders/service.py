"""Upcoming-shift reminder sweep.

Safe to run repeatedly or concurrently: each shift's ``reminder_sent``
flag is claimed with a conditional write before the notifier is called, so
a shift is announced at most once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..core.constants import DEFAULT_TIMEZONE, REMINDER_LEAD_TIME
from ..core.enums import NotificationType
from ..notifications.model import NotificationEvent
from ..notifications.notifier import Notifier, dispatch
from ..shifts.model import Shift
from ..shifts.repository import ShiftRepository
from ..shifts.windows import shift_start
from ..users.organization_repository import OrganizationRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderRun:
    checked: int
    due: int
    sent: int


def is_due(start: datetime, now: datetime, lead: timedelta = REMINDER_LEAD_TIME) -> bool:
    """Shift starts after ``now`` and no later than ``now + lead``."""
    return now < start <= now + lead


class ReminderService:
    def __init__(
        self,
        shifts: ShiftRepository,
        organizations: OrganizationRepository,
        notifier: Notifier,
        *,
        default_timezone: str = DEFAULT_TIMEZONE,
        lead_time: timedelta = REMINDER_LEAD_TIME,
    ):
        self._shifts = shifts
        self._organizations = organizations
        self._notifier = notifier
        self._default_timezone = default_timezone
        self._lead_time = lead_time

    def send_due_reminders(self, now: datetime) -> ReminderRun:
        # Local shift dates can sit a day either side of the UTC date.
        today = now.date()
        candidates = self._shifts.list_reminder_candidates(
            start=today - timedelta(days=1),
            end=(now + self._lead_time).date() + timedelta(days=1),
        )

        org_zones: dict[int, Optional[str]] = {}
        due = sent = 0
        for shift in candidates:
            if shift.organization_id not in org_zones:
                org = self._organizations.get_by_id(shift.organization_id)
                org_zones[shift.organization_id] = org.timezone if org else None
            start = shift_start(
                shift,
                org_timezone=org_zones[shift.organization_id],
                default_timezone=self._default_timezone,
            )
            if not is_due(start, now, self._lead_time):
                continue
            due += 1
            if not self._shifts.mark_reminder_sent(shift.shift_id):
                logger.debug("Reminder for shift %s already claimed", shift.shift_id)
                continue
            if self._remind(shift, start):
                sent += 1

        run = ReminderRun(checked=len(candidates), due=due, sent=sent)
        logger.info("Reminder sweep checked=%s due=%s sent=%s", run.checked, run.due, run.sent)
        return run

    def _remind(self, shift: Shift, start: datetime) -> bool:
        return dispatch(
            self._notifier,
            NotificationEvent(
                recipient_id=int(shift.assigned_to),
                type=NotificationType.SHIFT_REMINDER,
                title="Shift Starting Soon",
                message=(
                    f"Your shift {shift.name} starts at {shift.start_time} on {shift.date.isoformat()}"
                    + (f" at {shift.location}" if shift.location else "")
                ),
                related_model="Shift",
                related_id=shift.shift_id,
            ),
        )
