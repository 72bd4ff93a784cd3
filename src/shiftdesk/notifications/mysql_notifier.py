from __future__ import annotations

from typing import Sequence

from ..common.datetime_utils import as_utc
from ..core.enums import NotificationType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Notification, NotificationEvent
from .repository import NotificationRepository


class DatabaseNotifier(NotificationRepository):
    """Writes events to the in-app ``notifications`` inbox."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def send(self, event: NotificationEvent) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO notifications(recipient_id, type, title, message, related_model, related_id)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(event.recipient_id),
                    event.type.value,
                    event.title,
                    event.message,
                    event.related_model,
                    event.related_id,
                ),
            )

    def list_for_recipient(self, recipient_id: int, *, unread_only: bool = False, limit: int = 50) -> Sequence[Notification]:
        sql = """
            SELECT notification_id, recipient_id, type, title, message,
                   related_model, related_id, is_read, created_at
            FROM notifications
            WHERE recipient_id=%s
        """
        if unread_only:
            sql += " AND is_read=0"
        sql += " ORDER BY created_at DESC, notification_id DESC LIMIT %s"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (int(recipient_id), int(limit)))
            return [
                Notification(
                    notification_id=int(r["notification_id"]),
                    recipient_id=int(r["recipient_id"]),
                    type=NotificationType(r["type"]),
                    title=r["title"],
                    message=r["message"],
                    related_model=r.get("related_model"),
                    related_id=int(r["related_id"]) if r.get("related_id") is not None else None,
                    is_read=bool(r["is_read"]),
                    created_at=as_utc(r.get("created_at")),
                )
                for r in fetchall(cur)
            ]

    def mark_read(self, *, notification_id: int, recipient_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE notifications SET is_read=1 WHERE notification_id=%s AND recipient_id=%s",
                (int(notification_id), int(recipient_id)),
            )
            return cur.rowcount > 0

    def mark_all_read(self, recipient_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE notifications SET is_read=1 WHERE recipient_id=%s AND is_read=0",
                (int(recipient_id),),
            )
            return int(cur.rowcount)

    def unread_count(self, recipient_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS unread FROM notifications WHERE recipient_id=%s AND is_read=0",
                (int(recipient_id),),
            )
            r = fetchone(cur)
            return int(r["unread"]) if r else 0

    def delete(self, *, notification_id: int, recipient_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM notifications WHERE notification_id=%s AND recipient_id=%s",
                (int(notification_id), int(recipient_id)),
            )
            return cur.rowcount > 0
