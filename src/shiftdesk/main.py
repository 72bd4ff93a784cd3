from __future__ import annotations

import importlib
import logging

from dotenv import load_dotenv
from flask import Flask

from .approvals.controller import register as register_approvals
from .common.web import register_error_handlers
from .config import get_settings_module
from .container import build_container
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .leave.controller import register as register_leave
from .notifications.controller import register as register_notifications
from .reminders.scheduler import start_scheduler
from .reports.controller import register as register_reports
from .shifts.controller import register as register_shifts

logger = logging.getLogger(__name__)


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config)
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config)

    container = build_container(
        db_config=db_config,
        default_timezone=getattr(settings, "DEFAULT_TIMEZONE"),
        default_annual_leave_days=float(getattr(settings, "DEFAULT_ANNUAL_LEAVE_DAYS")),
    )
    app.extensions["shiftdesk"] = container

    register_error_handlers(app)
    register_shifts(app, container)
    register_leave(app, container)
    register_reports(app, container)
    register_notifications(app, container)
    register_approvals(app, container)

    if bool(getattr(settings, "ENABLE_REMINDER_JOB", False)):
        app.extensions["shiftdesk.scheduler"] = start_scheduler(
            container.reminder_service,
            interval_minutes=int(getattr(settings, "REMINDER_INTERVAL_MINUTES", 5)),
        )

    return app
