from __future__ import annotations

import pytest

from shiftdesk.config import get_settings_module
from shiftdesk.container import Container
from shiftdesk.main import create_app


@pytest.mark.parametrize(
    "env, expected",
    [
        ("production", "shiftdesk.config.production"),
        ("PROD", "shiftdesk.config.production"),
        ("testing", "shiftdesk.config.testing"),
        ("test", "shiftdesk.config.testing"),
        ("development", "shiftdesk.config.development"),
        ("anything-else", "shiftdesk.config.development"),
    ],
)
def test_settings_module_follows_app_env(monkeypatch, env, expected):
    monkeypatch.setenv("APP_ENV", env)

    assert get_settings_module() == expected


def test_settings_module_defaults_to_development(monkeypatch):
    monkeypatch.delenv("APP_ENV", raising=False)

    assert get_settings_module() == "shiftdesk.config.development"


def test_create_app_in_testing_mode(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")

    app = create_app()

    assert app.config["TESTING"] is True
    assert isinstance(app.extensions["shiftdesk"], Container)
    assert "shiftdesk.scheduler" not in app.extensions
    rules = {rule.rule for rule in app.url_map.iter_rules()}
    assert {"/shifts", "/shifts/<int:shift_id>/clock-in", "/leave/requests", "/reports/timesheet", "/notifications", "/approvals/staff"} <= rules


def test_unauthenticated_request_on_real_app(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")

    resp = create_app().test_client().get("/leave/balance")

    assert resp.status_code == 401
