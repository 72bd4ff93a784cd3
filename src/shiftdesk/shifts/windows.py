"""Clock-in/out time windows as pure functions of (now, shift start)."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..common.datetime_utils import combine_local, resolve_zone
from ..core.constants import CLOCK_IN_EARLY, CLOCK_IN_LATE, DEFAULT_TIMEZONE, MIN_WORKED_DURATION
from .model import Shift


@dataclass(frozen=True)
class ClockInWindow:
    opens: datetime
    closes: datetime

    def contains(self, now: datetime) -> bool:
        return self.opens <= now <= self.closes


def shift_start(shift: Shift, *, org_timezone: Optional[str] = None, default_timezone: str = DEFAULT_TIMEZONE) -> datetime:
    """Start instant (UTC) of ``shift`` in shift -> organization -> default timezone."""
    zone = resolve_zone(shift.timezone, org_timezone, default=default_timezone)
    return combine_local(shift.date, shift.start_time, zone)


def clock_in_window(start: datetime) -> ClockInWindow:
    return ClockInWindow(opens=start - CLOCK_IN_EARLY, closes=start + CLOCK_IN_LATE)


def is_within_clock_in_window(now: datetime, start: datetime) -> bool:
    return clock_in_window(start).contains(now)


def clock_out_earliest(clock_in: datetime) -> datetime:
    return clock_in + MIN_WORKED_DURATION


def minutes_until_clock_out(now: datetime, clock_in: datetime) -> int:
    """Whole minutes (rounded up) until clock-out is allowed; 0 when allowed."""
    remaining = clock_out_earliest(clock_in) - now
    if remaining <= timedelta(0):
        return 0
    return math.ceil(remaining / timedelta(minutes=1))
