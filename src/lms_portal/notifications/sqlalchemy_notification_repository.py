from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import NotificationCategory, NotificationChannel, NotificationPriority, NotificationStatus
from ..database import orm
from ..database.session import session_scope
from ..extensions import db
from .model import Notification, NotificationPreferences
from .repository import NotificationRepository


def _to_notification(row: orm.Notification) -> Notification:
    return Notification(
        notification_id=int(row.id),
        user_id=int(row.user_id),
        channel=NotificationChannel(row.channel),
        title=row.title,
        message=row.message,
        category=NotificationCategory(row.category),
        priority=NotificationPriority(row.priority),
        status=NotificationStatus(row.status),
        read=bool(row.read),
        created_at=row.created_at,
        read_at=row.read_at,
        action_url=row.action_url,
        error=row.error,
    )


class SQLAlchemyNotificationRepository(NotificationRepository):
    def create(self, *, user_id, channel, title, message, category, priority, action_url=None) -> int:
        with session_scope() as session:
            row = orm.Notification(
                user_id=int(user_id),
                channel=NotificationChannel(channel).value,
                title=title,
                message=message,
                category=NotificationCategory(category).value,
                priority=NotificationPriority(priority).value,
                status=NotificationStatus.PENDING.value,
                action_url=action_url,
            )
            session.add(row)
            session.flush()
            return int(row.id)

    def get_by_id(self, notification_id: int) -> Optional[Notification]:
        row = db.session.get(orm.Notification, int(notification_id))
        return _to_notification(row) if row else None

    def set_status(self, notification_id, status, *, error=None) -> None:
        with session_scope() as session:
            row = session.get(orm.Notification, int(notification_id))
            if row:
                row.status = NotificationStatus(status).value
                row.error = error

    def list_for_user(self, user_id, *, unread_only=False, limit=50) -> Sequence[Notification]:
        q = orm.Notification.query.filter_by(user_id=int(user_id))
        if unread_only:
            q = q.filter(orm.Notification.read.is_(False))
        rows = q.order_by(orm.Notification.created_at.desc(), orm.Notification.id.desc()).limit(int(limit)).all()
        return [_to_notification(r) for r in rows]

    def count_unread(self, user_id: int) -> int:
        return int(orm.Notification.query.filter_by(user_id=int(user_id), read=False).count())

    def mark_read(self, notification_id: int, at: datetime) -> bool:
        with session_scope() as session:
            row = session.get(orm.Notification, int(notification_id))
            if not row:
                return False
            if not row.read:
                row.read = True
                row.read_at = at
            return True

    def mark_all_read(self, user_id: int, at: datetime) -> int:
        with session_scope() as session:
            return int(
                session.query(orm.Notification)
                .filter(orm.Notification.user_id == int(user_id), orm.Notification.read.is_(False))
                .update({orm.Notification.read: True, orm.Notification.read_at: at}, synchronize_session=False)
            )

    def get_preferences(self, user_id: int) -> Optional[NotificationPreferences]:
        row = orm.NotificationSettings.query.filter_by(user_id=int(user_id)).first()
        if not row:
            return None
        return NotificationPreferences(
            user_id=int(row.user_id),
            assignment_deadlines=bool(row.assignment_deadlines),
            email_notifications=bool(row.email_notifications),
            reminder_time=row.reminder_time,
        )

    def save_preferences(self, prefs: NotificationPreferences) -> None:
        with session_scope() as session:
            row = orm.NotificationSettings.query.filter_by(user_id=int(prefs.user_id)).first()
            if not row:
                row = orm.NotificationSettings(user_id=int(prefs.user_id))
                session.add(row)
            row.assignment_deadlines = bool(prefs.assignment_deadlines)
            row.email_notifications = bool(prefs.email_notifications)
            row.reminder_time = prefs.reminder_time
