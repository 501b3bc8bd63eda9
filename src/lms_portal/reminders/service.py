"""Deadline reminders.

Reminder rows are scheduled when an assignment is published and consumed
by ``process_pending``, which an external trigger (cron endpoint or
``scripts/process_reminders.py``) calls periodically.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..assignments.model import Assignment
from ..assignments.repository import AssignmentRepository
from ..common.datetime_utils import now_local
from ..core.constants import REMINDER_MAX_ATTEMPTS, REMINDER_OFFSETS_HOURS
from ..core.enums import (
    EnrollmentStatus,
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    ReminderType,
)
from ..core.exceptions import NotFoundError, ValidationError
from ..enrollments.repository import EnrollmentRepository
from ..notifications.model import NotificationPreferences
from ..notifications.repository import NotificationRepository
from ..notifications.service import NotificationService
from ..submissions.repository import SubmissionRepository
from .model import AssignmentReminder, ProcessingResult
from .repository import ReminderRepository

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

_MESSAGES = {
    ReminderType.DUE_IN_48_HOURS: ("Assignment due in 48 hours: {title}", "\"{title}\" is due on {due}. Don't forget to submit.", NotificationPriority.MEDIUM),
    ReminderType.DUE_IN_24_HOURS: ("Assignment due tomorrow: {title}", "\"{title}\" is due on {due}. Only 24 hours left.", NotificationPriority.HIGH),
    ReminderType.OVERDUE: ("Assignment overdue: {title}", "\"{title}\" was due on {due} and has not been submitted.", NotificationPriority.URGENT),
}


def reminder_times(due_date: datetime) -> dict:
    return {ReminderType(kind): due_date + timedelta(hours=hours) for kind, hours in REMINDER_OFFSETS_HOURS.items()}


class ReminderService:
    def __init__(
        self,
        reminders: ReminderRepository,
        assignments: AssignmentRepository,
        enrollments: EnrollmentRepository,
        submissions: SubmissionRepository,
        notifications: NotificationRepository,
        notifier: NotificationService,
        *,
        batch_size: int = 100,
        max_attempts: int = REMINDER_MAX_ATTEMPTS,
    ):
        self._reminders = reminders
        self._assignments = assignments
        self._enrollments = enrollments
        self._submissions = submissions
        self._notifications = notifications
        self._notifier = notifier
        self._batch_size = int(batch_size)
        self._max_attempts = int(max_attempts)

    # Scheduling
    def schedule_reminders(self, assignment_id: int, *, now: Optional[datetime] = None) -> Sequence[AssignmentReminder]:
        assignment = self._assignments.get_by_id(int(assignment_id))
        if not assignment:
            raise NotFoundError("Assignment not found")
        if not assignment.is_published:
            return []

        now = now or now_local()
        for kind, at in reminder_times(assignment.due_date).items():
            if at > now:
                self._reminders.upsert(assignment_id=assignment.assignment_id, reminder_type=kind, scheduled_for=at)
        return self._reminders.list_for_assignment(assignment.assignment_id)

    def cancel_reminders(self, assignment_id: int) -> int:
        return self._reminders.delete_for_assignment(int(assignment_id))

    def reschedule_reminders(self, assignment_id: int, *, now: Optional[datetime] = None) -> Sequence[AssignmentReminder]:
        self.cancel_reminders(assignment_id)
        return self.schedule_reminders(assignment_id, now=now)

    # Processing
    def process_pending(self, *, now: Optional[datetime] = None) -> ProcessingResult:
        now = now or now_local()
        processed = failed = sent = 0

        for reminder in self._reminders.list_due(now, limit=self._batch_size, max_attempts=self._max_attempts):
            try:
                sent += self._process_one(reminder, now)
                self._reminders.mark_processed(reminder.reminder_id, now)
                processed += 1
            except Exception:
                failed += 1
                attempts = self._reminders.record_failure(reminder.reminder_id)
                logger.exception(
                    "reminder %s (%s) for assignment %s failed, attempt %d of %d",
                    reminder.reminder_id,
                    reminder.reminder_type.value,
                    reminder.assignment_id,
                    attempts,
                    self._max_attempts,
                )

        if processed or failed:
            logger.info("reminders processed=%d failed=%d notifications=%d", processed, failed, sent)
        return ProcessingResult(processed=processed, failed=failed, notifications_sent=sent)

    def _process_one(self, reminder: AssignmentReminder, now: datetime) -> int:
        assignment = self._assignments.get_by_id(reminder.assignment_id)
        if not assignment or not assignment.is_published:
            return 0

        sent = 0
        for enrollment in self._enrollments.list_for_course(assignment.course_id, status=EnrollmentStatus.ACTIVE):
            if self._should_remind(assignment, enrollment.user_id, reminder.reminder_type, now):
                sent += self._notify(assignment, enrollment.user_id, reminder.reminder_type)
        return sent

    def _should_remind(self, assignment: Assignment, student_id: int, kind: ReminderType, now: datetime) -> bool:
        prefs = self.get_preferences(student_id)
        if not prefs.assignment_deadlines:
            return False

        submission = self._submissions.get_for_student(assignment.assignment_id, student_id)
        if submission and submission.is_final:
            return False

        if kind == ReminderType.OVERDUE:
            extension = self._assignments.get_extension(assignment.assignment_id, student_id)
            if extension and extension.new_due_date > now:
                return False
        return True

    def _notify(self, assignment: Assignment, student_id: int, kind: ReminderType) -> int:
        title_tpl, body_tpl, priority = _MESSAGES[kind]
        due = assignment.due_date.strftime("%Y-%m-%d %H:%M")
        title = title_tpl.format(title=assignment.title)
        message = body_tpl.format(title=assignment.title, due=due)

        channels = [NotificationChannel.IN_APP]
        if self.get_preferences(student_id).email_notifications:
            channels.append(NotificationChannel.EMAIL)

        for channel in channels:
            self._notifier.send(
                user_id=student_id,
                title=title,
                message=message,
                channel=channel,
                category=NotificationCategory.COURSE,
                priority=priority,
                action_url=f"/assignments/{assignment.assignment_id}",
            )
        return len(channels)

    # Preferences
    def get_preferences(self, user_id: int) -> NotificationPreferences:
        return self._notifications.get_preferences(int(user_id)) or NotificationPreferences(user_id=int(user_id))

    def update_preferences(
        self,
        user_id: int,
        *,
        assignment_deadlines: Optional[bool] = None,
        email_notifications: Optional[bool] = None,
        reminder_time: Optional[str] = None,
    ) -> NotificationPreferences:
        current = self.get_preferences(user_id)
        if reminder_time is not None and not _TIME_RE.match(reminder_time):
            raise ValidationError("reminder_time must be HH:MM", {"reminder_time": ["Must be HH:MM"]})

        updated = NotificationPreferences(
            user_id=int(user_id),
            assignment_deadlines=current.assignment_deadlines if assignment_deadlines is None else bool(assignment_deadlines),
            email_notifications=current.email_notifications if email_notifications is None else bool(email_notifications),
            reminder_time=reminder_time or current.reminder_time,
        )
        self._notifications.save_preferences(updated)
        return updated
