from __future__ import annotations

from typing import Protocol, Sequence

from .model import Notification


class NotificationRepository(Protocol):
    def list_for_recipient(self, recipient_id: int, *, unread_only: bool = False, limit: int = 50) -> Sequence[Notification]:
        raise NotImplementedError

    def mark_read(self, *, notification_id: int, recipient_id: int) -> bool:
        raise NotImplementedError

    def mark_all_read(self, recipient_id: int) -> int:
        raise NotImplementedError

    def unread_count(self, recipient_id: int) -> int:
        raise NotImplementedError

    def delete(self, *, notification_id: int, recipient_id: int) -> bool:
        """Remove one of the recipient's own notifications."""

        raise NotImplementedError
