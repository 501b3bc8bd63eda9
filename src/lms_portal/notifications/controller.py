from __future__ import annotations

from flask import Flask, request
from flask_login import login_required

from ..web.http import current_user_id, ok, parse_body
from .schemas import PreferencesRequest


def register(app: Flask, container) -> None:
    notifications = container.notification_service

    @app.route("/api/notifications", endpoint="notifications_list")
    @login_required
    def notifications_list():
        unread_only = request.args.get("unread_only", "").lower() in {"1", "true", "yes"}
        limit = request.args.get("limit", 50, type=int)
        rows = notifications.list_for_user(user_id=current_user_id(), unread_only=unread_only, limit=max(1, min(limit, 200)))
        return ok([n.to_dict() for n in rows], unread_count=notifications.unread_count(user_id=current_user_id()))

    @app.route("/api/notifications/<int:notification_id>/read", methods=["POST"], endpoint="notifications_mark_read")
    @login_required
    def notifications_mark_read(notification_id: int):
        return ok(notifications.mark_read(user_id=current_user_id(), notification_id=notification_id).to_dict())

    @app.route("/api/notifications/read-all", methods=["POST"], endpoint="notifications_mark_all_read")
    @login_required
    def notifications_mark_all_read():
        return ok({"updated": notifications.mark_all_read(user_id=current_user_id())})

    @app.route("/api/notifications/preferences", endpoint="notifications_preferences")
    @login_required
    def notifications_preferences():
        return ok(container.reminder_service.get_preferences(current_user_id()).to_dict())

    @app.route("/api/notifications/preferences", methods=["PUT"], endpoint="notifications_update_preferences")
    @login_required
    def notifications_update_preferences():
        body = parse_body(PreferencesRequest)
        prefs = container.reminder_service.update_preferences(current_user_id(), **body.model_dump())
        return ok(prefs.to_dict())
