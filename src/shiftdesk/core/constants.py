"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import timedelta

DEFAULT_TIMEZONE = "Africa/Nairobi"
DEFAULT_ANNUAL_LEAVE_DAYS = 21

CLOCK_IN_EARLY = timedelta(hours=1)
CLOCK_IN_LATE = timedelta(hours=2)
MIN_WORKED_DURATION = timedelta(minutes=15)

REMINDER_LEAD_TIME = timedelta(hours=1)
DEFAULT_REMINDER_INTERVAL_MINUTES = 5

STAFF_CANCELLED_COMMENT = "Cancelled by staff member"
MANAGER_ASSIGNED_COMMENT = "Leave assigned by manager"

DEFAULT_IMPORT_ROLE = "staff"
DEFAULT_IMPORT_LOCATION = "Main Location"
DEFAULT_LIST_LIMIT = 200
DEFAULT_IMPORT_SHIFT_NAME = "Scheduled Shift"
IMPORT_REQUIRED_COLUMNS = ("staffEmail", "date", "startTime", "endTime")
REPORT_ROW_LIMIT = 10000
