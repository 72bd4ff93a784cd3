from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.constants import DEFAULT_TIMEZONE


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_hhmm(value: str) -> time:
    """Parse a local time-of-day string "HH:MM"."""
    return datetime.strptime(value.strip(), "%H:%M").time()


def now_utc() -> datetime:
    """Current time, timezone-aware UTC.

    Note: Only the controller/job edges call this; services receive ``now``.
    """
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from MySQL DATETIME columns."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """Store instants as naive UTC."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def resolve_zone(*names: Optional[str], default: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    """First resolvable zone among ``names``, else ``default``, else UTC."""
    for name in (*names, default):
        if not name:
            continue
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            continue
    return ZoneInfo("UTC")


def combine_local(day: date, hhmm: str, zone: ZoneInfo) -> datetime:
    """Local wall-clock (day, HH:MM) in ``zone`` as an aware UTC instant."""
    local = datetime.combine(day, parse_hhmm(hhmm)).replace(tzinfo=zone)
    return local.astimezone(timezone.utc)


def local_today(now: datetime, zone: ZoneInfo) -> date:
    return now.astimezone(zone).date()


def inclusive_days(start: date, end: date) -> int:
    """Calendar days from start to end, both ends counted."""
    return (end - start).days + 1


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return a_start <= b_end and b_start <= a_end


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed hours rounded to 2 places (half up)."""
    seconds = Decimal(str((end - start) / timedelta(seconds=1)))
    hours = seconds / Decimal(3600)
    return float(hours.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
