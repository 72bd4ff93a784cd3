from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import NotificationType


@dataclass(frozen=True)
class NotificationEvent:
    """Something a member should hear about after a committed transition."""

    recipient_id: int
    type: NotificationType
    title: str
    message: str
    related_model: Optional[str] = None
    related_id: Optional[int] = None


@dataclass(frozen=True)
class Notification:
    notification_id: int
    recipient_id: int
    type: NotificationType
    title: str
    message: str
    related_model: Optional[str] = None
    related_id: Optional[int] = None
    is_read: bool = False
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "notification_id": self.notification_id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "related_model": self.related_model,
            "related_id": self.related_id,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
