from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import current_caller, query_int
from ..core.exceptions import NotFoundError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    inbox = container.notifications_repo

    @app.route("/notifications", methods=["GET"], endpoint="list_notifications")
    def list_notifications():
        caller = current_caller()
        unread_only = (request.args.get("unread") or "").lower() in {"1", "true", "yes"}
        items = inbox.list_for_recipient(caller.user_id, unread_only=unread_only, limit=query_int("limit", 50))
        return jsonify({"notifications": [n.to_dict() for n in items]})

    @app.route("/notifications/<int:notification_id>/read", methods=["POST"], endpoint="read_notification")
    def read_notification(notification_id: int):
        caller = current_caller()
        if not inbox.mark_read(notification_id=notification_id, recipient_id=caller.user_id):
            raise NotFoundError("Notification not found")
        return jsonify({"message": "Notification marked as read"})

    @app.route("/notifications/read-all", methods=["POST"], endpoint="read_all_notifications")
    def read_all_notifications():
        count = inbox.mark_all_read(current_caller().user_id)
        return jsonify({"message": "All notifications marked as read", "updated": count})

    @app.route("/notifications/unread-count", methods=["GET"], endpoint="unread_notification_count")
    def unread_notification_count():
        return jsonify({"unread": inbox.unread_count(current_caller().user_id)})

    @app.route("/notifications/<int:notification_id>", methods=["DELETE"], endpoint="delete_notification")
    def delete_notification(notification_id: int):
        caller = current_caller()
        if not inbox.delete(notification_id=notification_id, recipient_id=caller.user_id):
            raise NotFoundError("Notification not found")
        return jsonify({"message": "Notification deleted"})
