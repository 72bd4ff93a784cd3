import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shiftdesk_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
AUTO_SEED_DB = False

DEFAULT_TIMEZONE = "Africa/Nairobi"
DEFAULT_ANNUAL_LEAVE_DAYS = 21.0

ENABLE_REMINDER_JOB = False
REMINDER_INTERVAL_MINUTES = 5
