"""Run one reminder sweep and exit (for cron instead of the in-process job)."""

from __future__ import annotations

import importlib
import logging

from dotenv import load_dotenv

from shiftdesk.common.datetime_utils import now_utc
from shiftdesk.config import get_settings_module
from shiftdesk.container import build_container


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"))

    container = build_container(
        db_config=dict(settings.DB_CONFIG),
        default_timezone=settings.DEFAULT_TIMEZONE,
        default_annual_leave_days=float(settings.DEFAULT_ANNUAL_LEAVE_DAYS),
    )
    run = container.reminder_service.send_due_reminders(now_utc())
    print(f"OK: reminders checked={run.checked} due={run.due} sent={run.sent}")


if __name__ == "__main__":
    main()
