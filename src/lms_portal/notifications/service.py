from __future__ import annotations

import logging
import smtplib
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.enums import (
    EnrollmentStatus,
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
)
from ..core.exceptions import AuthorizationError, NotFoundError
from ..enrollments.repository import EnrollmentRepository
from ..users.repository import UserRepository
from .mailer import Mailer
from .model import Notification
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(
        self,
        notifications: NotificationRepository,
        users: UserRepository,
        enrollments: EnrollmentRepository,
        mailer: Mailer,
    ):
        self._notifications = notifications
        self._users = users
        self._enrollments = enrollments
        self._mailer = mailer

    def send(
        self,
        *,
        user_id: int,
        title: str,
        message: str,
        channel: NotificationChannel = NotificationChannel.IN_APP,
        category: NotificationCategory = NotificationCategory.SYSTEM,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        action_url: Optional[str] = None,
    ) -> Notification:
        title = require_non_empty(title, "title")
        message = require_non_empty(message, "message")

        notification_id = self._notifications.create(
            user_id=int(user_id),
            channel=channel,
            title=title,
            message=message,
            category=category,
            priority=priority,
            action_url=action_url,
        )

        if channel == NotificationChannel.IN_APP:
            self._notifications.set_status(notification_id, NotificationStatus.SENT)
        else:
            self._deliver_email(notification_id, int(user_id), title, message)

        return self._notifications.get_by_id(notification_id)

    def _deliver_email(self, notification_id: int, user_id: int, title: str, message: str) -> None:
        user = self._users.get_by_id(user_id)
        if not user:
            self._notifications.set_status(notification_id, NotificationStatus.FAILED, error="User not found")
            return
        try:
            self._mailer.send(to=user.email, subject=title, body=message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("email notification %s to user %s failed: %s", notification_id, user_id, exc)
            self._notifications.set_status(notification_id, NotificationStatus.FAILED, error=str(exc))
            return
        self._notifications.set_status(notification_id, NotificationStatus.SENT)

    def notify_course(
        self,
        *,
        course_id: int,
        title: str,
        message: str,
        channel: NotificationChannel = NotificationChannel.IN_APP,
        category: NotificationCategory = NotificationCategory.COURSE,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
    ) -> int:
        """Send to every active student of a course; returns how many were sent."""
        sent = 0
        for enrollment in self._enrollments.list_for_course(int(course_id), status=EnrollmentStatus.ACTIVE):
            result = self.send(
                user_id=enrollment.user_id,
                title=title,
                message=message,
                channel=channel,
                category=category,
                priority=priority,
            )
            if result.status == NotificationStatus.SENT:
                sent += 1
        return sent

    def list_for_user(self, *, user_id: int, unread_only: bool = False, limit: int = 50) -> Sequence[Notification]:
        return self._notifications.list_for_user(int(user_id), unread_only=unread_only, limit=limit)

    def unread_count(self, *, user_id: int) -> int:
        return self._notifications.count_unread(int(user_id))

    def mark_read(self, *, user_id: int, notification_id: int, now: Optional[datetime] = None) -> Notification:
        notification = self._notifications.get_by_id(int(notification_id))
        if not notification:
            raise NotFoundError("Notification not found")
        if notification.user_id != int(user_id):
            raise AuthorizationError("Not your notification")
        self._notifications.mark_read(notification.notification_id, now or now_local())
        return self._notifications.get_by_id(notification.notification_id)

    def mark_all_read(self, *, user_id: int, now: Optional[datetime] = None) -> int:
        return self._notifications.mark_all_read(int(user_id), now or now_local())
