from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.constants import DEFAULT_REMINDER_TIME
from ..core.enums import NotificationCategory, NotificationChannel, NotificationPriority, NotificationStatus


@dataclass(frozen=True)
class Notification:
    notification_id: int
    user_id: int
    channel: NotificationChannel
    title: str
    message: str
    category: NotificationCategory
    priority: NotificationPriority
    status: NotificationStatus
    read: bool
    created_at: datetime
    read_at: Optional[datetime] = None
    action_url: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.notification_id,
            "user_id": self.user_id,
            "channel": self.channel.value,
            "title": self.title,
            "message": self.message,
            "category": self.category.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "read": self.read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "action_url": self.action_url,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class NotificationPreferences:
    user_id: int
    assignment_deadlines: bool = True
    email_notifications: bool = True
    reminder_time: str = DEFAULT_REMINDER_TIME

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "assignment_deadlines": self.assignment_deadlines,
            "email_notifications": self.email_notifications,
            "reminder_time": self.reminder_time,
        }
