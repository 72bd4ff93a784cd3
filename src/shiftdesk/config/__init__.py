import os


def get_settings_module() -> str:
    """Settings module for the environment named by APP_ENV (default development)."""
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "shiftdesk.config.production"

    if env in {"test", "testing"}:
        return "shiftdesk.config.testing"

    return "shiftdesk.config.development"
