from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import NotificationCategory, NotificationChannel, NotificationPriority, NotificationStatus
from .model import Notification, NotificationPreferences


class NotificationRepository(Protocol):
    def create(
        self,
        *,
        user_id: int,
        channel: NotificationChannel,
        title: str,
        message: str,
        category: NotificationCategory,
        priority: NotificationPriority,
        action_url: Optional[str] = None,
    ) -> int:
        """Insert a PENDING notification."""

        raise NotImplementedError

    def get_by_id(self, notification_id: int) -> Optional[Notification]:
        raise NotImplementedError

    def set_status(self, notification_id: int, status: NotificationStatus, *, error: Optional[str] = None) -> None:
        raise NotImplementedError

    def list_for_user(self, user_id: int, *, unread_only: bool = False, limit: int = 50) -> Sequence[Notification]:
        raise NotImplementedError

    def count_unread(self, user_id: int) -> int:
        raise NotImplementedError

    def mark_read(self, notification_id: int, at: datetime) -> bool:
        raise NotImplementedError

    def mark_all_read(self, user_id: int, at: datetime) -> int:
        raise NotImplementedError

    # Preferences
    def get_preferences(self, user_id: int) -> Optional[NotificationPreferences]:
        raise NotImplementedError

    def save_preferences(self, prefs: NotificationPreferences) -> None:
        raise NotImplementedError
