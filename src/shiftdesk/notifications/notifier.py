"""Outbound notification contract.

Delivery happens after the transition has committed. A failing notifier
must never undo or fail the transition, so services go through
:func:`dispatch`, which logs the failure and moves on.
"""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from .model import NotificationEvent

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, event: NotificationEvent) -> None:
        raise NotImplementedError


class LoggingNotifier:
    """Notifier that only writes the event to the log."""

    def send(self, event: NotificationEvent) -> None:
        logger.info(
            "notify recipient=%s type=%s title=%r related=%s:%s",
            event.recipient_id,
            event.type.value,
            event.title,
            event.related_model,
            event.related_id,
        )


def dispatch(notifier: Notifier, event: NotificationEvent) -> bool:
    """Send one event; returns False (after logging) when delivery failed."""
    try:
        notifier.send(event)
        return True
    except Exception:
        logger.exception(
            "Notification delivery failed recipient=%s type=%s",
            event.recipient_id,
            event.type.value,
        )
        return False


def dispatch_all(notifier: Notifier, events: Iterable[NotificationEvent]) -> int:
    return sum(1 for event in events if dispatch(notifier, event))
