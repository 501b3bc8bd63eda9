from __future__ import annotations

import smtplib
from dataclasses import replace
from datetime import datetime
from typing import Optional

import pytest

from lms_portal.core.enums import (
    EnrollmentStatus,
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    Role,
    UserStatus,
)
from lms_portal.core.exceptions import AuthorizationError, ValidationError
from lms_portal.enrollments.model import Enrollment
from lms_portal.notifications.model import Notification
from lms_portal.notifications.service import NotificationService
from lms_portal.users.model import User


class InMemoryNotifications:
    def __init__(self):
        self.rows: dict[int, Notification] = {}

    def create(self, *, user_id, channel, title, message, category, priority, action_url=None) -> int:
        notification_id = len(self.rows) + 1
        self.rows[notification_id] = Notification(
            notification_id, user_id, channel, title, message, category, priority,
            NotificationStatus.PENDING, False, datetime(2026, 3, 1), action_url=action_url,
        )
        return notification_id

    def get_by_id(self, notification_id) -> Optional[Notification]:
        return self.rows.get(notification_id)

    def set_status(self, notification_id, status, *, error=None) -> None:
        self.rows[notification_id] = replace(self.rows[notification_id], status=status, error=error)

    def list_for_user(self, user_id, *, unread_only=False, limit=50):
        rows = [n for n in self.rows.values() if n.user_id == user_id and (not unread_only or not n.read)]
        return rows[:limit]

    def count_unread(self, user_id) -> int:
        return sum(1 for n in self.rows.values() if n.user_id == user_id and not n.read)

    def mark_read(self, notification_id, at) -> bool:
        self.rows[notification_id] = replace(self.rows[notification_id], read=True, read_at=at)
        return True

    def mark_all_read(self, user_id, at) -> int:
        unread = [n for n in self.rows.values() if n.user_id == user_id and not n.read]
        for n in unread:
            self.mark_read(n.notification_id, at)
        return len(unread)


class InMemoryUsers:
    def __init__(self, *users: User):
        self.users = {u.user_id: u for u in users}

    def get_by_id(self, user_id) -> Optional[User]:
        return self.users.get(user_id)


class InMemoryEnrollments:
    def __init__(self, *rows: Enrollment):
        self.rows = rows

    def list_for_course(self, course_id, *, status=None):
        return [e for e in self.rows if e.course_id == course_id and (status is None or e.status == status)]


class FakeMailer:
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.outbox = []

    def send(self, *, to, subject, body, html=None):
        if self.fail:
            raise smtplib.SMTPException("relay refused")
        self.outbox.append((to, subject))


def _user(user_id):
    return User(user_id, f"user{user_id}@example.com", "User", "x", Role.STUDENT, UserStatus.ACTIVE, datetime(2026, 1, 1))


def _service(mailer=None, enrollments=()):
    repo = InMemoryNotifications()
    service = NotificationService(repo, InMemoryUsers(_user(1), _user(2)), InMemoryEnrollments(*enrollments), mailer or FakeMailer())
    return service, repo


def test_in_app_notification_is_sent_immediately():
    service, _ = _service()
    n = service.send(user_id=1, title="Hi", message="Welcome", priority=NotificationPriority.HIGH)
    assert n.status == NotificationStatus.SENT
    assert n.channel == NotificationChannel.IN_APP


def test_email_notification_goes_through_mailer():
    mailer = FakeMailer()
    service, _ = _service(mailer)
    n = service.send(user_id=2, title="Due soon", message="Essay", channel=NotificationChannel.EMAIL)
    assert n.status == NotificationStatus.SENT
    assert mailer.outbox == [("user2@example.com", "Due soon")]


def test_email_failure_is_recorded_not_raised():
    service, _ = _service(FakeMailer(fail=True))
    n = service.send(user_id=1, title="Due soon", message="Essay", channel=NotificationChannel.EMAIL)
    assert n.status == NotificationStatus.FAILED
    assert "relay refused" in n.error


def test_title_and_message_are_required():
    service, _ = _service()
    with pytest.raises(ValidationError):
        service.send(user_id=1, title=" ", message="x")


def test_notify_course_reaches_active_students_only():
    now = datetime(2026, 3, 1)
    service, repo = _service(
        enrollments=(
            Enrollment(1, 1, 5, EnrollmentStatus.ACTIVE, 0, now),
            Enrollment(2, 2, 5, EnrollmentStatus.DROPPED, 0, now),
        )
    )
    assert service.notify_course(course_id=5, title="Class moved", message="Room 2") == 1
    assert [n.user_id for n in repo.rows.values()] == [1]


def test_mark_read_and_mark_all_read(fixed_now):
    service, _ = _service()
    first = service.send(user_id=1, title="A", message="a")
    service.send(user_id=1, title="B", message="b")
    other = service.send(user_id=2, title="C", message="c")

    with pytest.raises(AuthorizationError):
        service.mark_read(user_id=1, notification_id=other.notification_id)

    read = service.mark_read(user_id=1, notification_id=first.notification_id, now=fixed_now)
    assert read.read and read.read_at == fixed_now
    assert service.unread_count(user_id=1) == 1

    assert service.mark_all_read(user_id=1, now=fixed_now) == 1
    assert service.unread_count(user_id=1) == 0
    assert service.unread_count(user_id=2) == 1
