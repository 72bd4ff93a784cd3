"""Background scheduler for the reminder sweep."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler

from ..common.datetime_utils import now_utc
from ..core.constants import DEFAULT_REMINDER_INTERVAL_MINUTES
from .service import ReminderService

logger = logging.getLogger(__name__)

JOB_ID = "send_shift_reminders"

job_defaults = {
    "coalesce": True,  # collapse missed runs into one
    "max_instances": 1,
    "misfire_grace_time": 60,
}


def build_scheduler() -> BackgroundScheduler:
    return BackgroundScheduler(
        jobstores={"default": MemoryJobStore()},
        job_defaults=job_defaults,
        timezone="UTC",
    )


def run_reminder_job(reminders: ReminderService, clock: Callable = now_utc) -> None:
    """Scheduler entry point; a failed sweep is logged and retried next tick."""
    try:
        reminders.send_due_reminders(clock())
    except Exception:
        logger.exception("Reminder sweep failed")


def start_scheduler(
    reminders: ReminderService,
    *,
    interval_minutes: int = DEFAULT_REMINDER_INTERVAL_MINUTES,
    scheduler: Optional[BackgroundScheduler] = None,
) -> BackgroundScheduler:
    scheduler = scheduler or build_scheduler()
    scheduler.add_job(
        run_reminder_job,
        "interval",
        minutes=int(interval_minutes),
        args=[reminders],
        id=JOB_ID,
        name="Send shift reminders",
        replace_existing=True,
    )
    if not scheduler.running:
        scheduler.start()
    logger.info("Reminder job scheduled every %s minutes", interval_minutes)
    return scheduler


def shutdown_scheduler(scheduler: BackgroundScheduler) -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Reminder scheduler stopped")
