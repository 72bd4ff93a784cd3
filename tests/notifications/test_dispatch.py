from __future__ import annotations

import logging

from shiftdesk.core.enums import NotificationType
from shiftdesk.notifications.model import NotificationEvent
from shiftdesk.notifications.notifier import LoggingNotifier, dispatch, dispatch_all
from tests.fakes import FailingNotifier, RecordingNotifier


def _event(recipient_id=2):
    return NotificationEvent(
        recipient_id=recipient_id,
        type=NotificationType.SHIFT_ASSIGNED,
        title="New Shift Assigned",
        message="You have been assigned Ward on 2026-03-02 09:00-17:00",
        related_model="Shift",
        related_id=1,
    )


def test_dispatch_delivers():
    notifier = RecordingNotifier()

    assert dispatch(notifier, _event()) is True
    assert notifier.events == [_event()]


def test_dispatch_swallows_and_logs_failures(caplog):
    with caplog.at_level(logging.ERROR, logger="shiftdesk.notifications.notifier"):
        assert dispatch(FailingNotifier(), _event()) is False

    assert "Notification delivery failed recipient=2 type=shift_assigned" in caplog.text


def test_dispatch_all_counts_successes():
    assert dispatch_all(RecordingNotifier(), [_event(2), _event(3)]) == 2
    assert dispatch_all(FailingNotifier(), [_event(2), _event(3)]) == 0


def test_logging_notifier(caplog):
    with caplog.at_level(logging.INFO, logger="shiftdesk.notifications.notifier"):
        LoggingNotifier().send(_event())

    assert "notify recipient=2 type=shift_assigned" in caplog.text
