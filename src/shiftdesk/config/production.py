import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "shiftdesk"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shiftdesk_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = False

DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "Africa/Nairobi")
DEFAULT_ANNUAL_LEAVE_DAYS = float(os.getenv("DEFAULT_ANNUAL_LEAVE_DAYS", "21"))

ENABLE_REMINDER_JOB = bool(int(os.getenv("ENABLE_REMINDER_JOB", "1")))
REMINDER_INTERVAL_MINUTES = int(os.getenv("REMINDER_INTERVAL_MINUTES", "5"))
