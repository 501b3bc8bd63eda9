from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

import pytest

from lms_portal.assignments.model import Assignment, AssignmentExtension
from lms_portal.core.enums import EnrollmentStatus, NotificationChannel, ReminderType, SubmissionStatus
from lms_portal.core.exceptions import ValidationError
from lms_portal.enrollments.model import Enrollment
from lms_portal.notifications.model import NotificationPreferences
from lms_portal.reminders.model import AssignmentReminder
from lms_portal.reminders.service import ReminderService, reminder_times
from lms_portal.submissions.model import Submission

NOW = datetime(2026, 3, 2, 9, 0)


class InMemoryReminders:
    def __init__(self):
        self.rows: dict[int, AssignmentReminder] = {}

    def upsert(self, *, assignment_id, reminder_type, scheduled_for) -> int:
        for r in self.rows.values():
            if r.assignment_id == assignment_id and r.reminder_type == reminder_type:
                self.rows[r.reminder_id] = replace(r, scheduled_for=scheduled_for, processed=False, processed_at=None, attempts=0)
                return r.reminder_id
        reminder_id = len(self.rows) + 1
        self.rows[reminder_id] = AssignmentReminder(reminder_id, assignment_id, reminder_type, scheduled_for, False)
        return reminder_id

    def list_due(self, now, *, limit=100, max_attempts=5):
        due = [r for r in self.rows.values() if not r.processed and r.scheduled_for <= now and r.attempts < max_attempts]
        return sorted(due, key=lambda r: r.scheduled_for)[:limit]

    def record_failure(self, reminder_id) -> int:
        row = self.rows[reminder_id]
        self.rows[reminder_id] = replace(row, attempts=row.attempts + 1)
        return row.attempts + 1

    def mark_processed(self, reminder_id, at) -> None:
        self.rows[reminder_id] = replace(self.rows[reminder_id], processed=True, processed_at=at)

    def delete_for_assignment(self, assignment_id) -> int:
        doomed = [k for k, r in self.rows.items() if r.assignment_id == assignment_id]
        for k in doomed:
            del self.rows[k]
        return len(doomed)

    def list_for_assignment(self, assignment_id):
        return [r for r in self.rows.values() if r.assignment_id == assignment_id]


class InMemoryAssignments:
    def __init__(self, *assignments: Assignment):
        self.rows = {a.assignment_id: a for a in assignments}
        self.extensions: dict[tuple[int, int], AssignmentExtension] = {}

    def get_by_id(self, assignment_id) -> Optional[Assignment]:
        return self.rows.get(assignment_id)

    def get_extension(self, assignment_id, student_id) -> Optional[AssignmentExtension]:
        return self.extensions.get((assignment_id, student_id))


class InMemoryEnrollments:
    def __init__(self, *enrollments: Enrollment):
        self.rows = list(enrollments)

    def list_for_course(self, course_id, *, status=None):
        return [e for e in self.rows if e.course_id == course_id and (status is None or e.status == status)]


class InMemorySubmissions:
    def __init__(self, *submissions: Submission):
        self.rows = {(s.assignment_id, s.student_id): s for s in submissions}

    def get_for_student(self, assignment_id, student_id) -> Optional[Submission]:
        return self.rows.get((assignment_id, student_id))


class InMemoryPreferences:
    def __init__(self):
        self.prefs: dict[int, NotificationPreferences] = {}

    def get_preferences(self, user_id) -> Optional[NotificationPreferences]:
        return self.prefs.get(user_id)

    def save_preferences(self, prefs: NotificationPreferences) -> None:
        self.prefs[prefs.user_id] = prefs


class RecordingNotifier:
    def __init__(self, *, fail_for: tuple[int, ...] = ()):
        self.sent = []
        self.fail_for = fail_for

    def send(self, **kwargs):
        if kwargs["user_id"] in self.fail_for:
            raise RuntimeError("delivery exploded")
        self.sent.append(kwargs)


def _assignment(assignment_id=1, *, course_id=10, due=NOW + timedelta(days=3), published=True) -> Assignment:
    return Assignment(
        assignment_id=assignment_id,
        course_id=course_id,
        instructor_id=2,
        title=f"Essay {assignment_id}",
        description="",
        due_date=due,
        total_points=100,
        allow_late_submission=True,
        late_penalty=10,
        max_files=1,
        is_published=published,
        graded_count=0,
        created_at=NOW - timedelta(days=10),
    )


def _enrollment(user_id, course_id=10, status=EnrollmentStatus.ACTIVE) -> Enrollment:
    return Enrollment(user_id, user_id, course_id, status, 0, NOW - timedelta(days=5))


def _service(assignments, enrollments=(), submissions=(), notifier=None, **options):
    reminders = InMemoryReminders()
    prefs = InMemoryPreferences()
    notifier = notifier or RecordingNotifier()
    service = ReminderService(
        reminders,
        assignments,
        InMemoryEnrollments(*enrollments),
        InMemorySubmissions(*submissions),
        prefs,
        notifier,
        **options,
    )
    return service, reminders, prefs, notifier


def test_reminder_times_offsets():
    due = datetime(2026, 3, 10, 23, 59)
    times = reminder_times(due)
    assert times[ReminderType.DUE_IN_48_HOURS] == due - timedelta(hours=48)
    assert times[ReminderType.DUE_IN_24_HOURS] == due - timedelta(hours=24)
    assert times[ReminderType.OVERDUE] == due + timedelta(hours=1)


def test_schedule_skips_times_already_past():
    assignments = InMemoryAssignments(_assignment(due=NOW + timedelta(hours=30)))
    service, reminders, _, _ = _service(assignments)

    scheduled = service.schedule_reminders(1, now=NOW)

    assert sorted(r.reminder_type for r in scheduled) == sorted([ReminderType.DUE_IN_24_HOURS, ReminderType.OVERDUE])


def test_unpublished_assignment_gets_no_reminders():
    service, _, _, _ = _service(InMemoryAssignments(_assignment(published=False)))
    assert service.schedule_reminders(1, now=NOW) == []


def test_reschedule_replaces_previous_rows():
    assignments = InMemoryAssignments(_assignment())
    service, reminders, _, _ = _service(assignments)
    service.schedule_reminders(1, now=NOW)

    assignments.rows[1] = replace(assignments.rows[1], due_date=NOW + timedelta(days=10))
    rows = service.reschedule_reminders(1, now=NOW)

    assert len(rows) == 3
    assert all(r.scheduled_for > NOW + timedelta(days=7) for r in rows)


def test_process_pending_only_handles_due_unprocessed_rows():
    assignments = InMemoryAssignments(_assignment(due=NOW + timedelta(hours=40)))
    service, reminders, _, notifier = _service(assignments, enrollments=[_enrollment(100)])
    reminders.upsert(assignment_id=1, reminder_type=ReminderType.DUE_IN_48_HOURS, scheduled_for=NOW - timedelta(hours=8))
    reminders.upsert(assignment_id=1, reminder_type=ReminderType.DUE_IN_24_HOURS, scheduled_for=NOW + timedelta(hours=16))

    result = service.process_pending(now=NOW)

    assert result.to_dict() == {"processed": 1, "failed": 0, "notifications_sent": 2}
    assert [n["channel"] for n in notifier.sent] == [NotificationChannel.IN_APP, NotificationChannel.EMAIL]
    assert notifier.sent[0]["title"] == "Assignment due in 48 hours: Essay 1"
    assert reminders.rows[1].processed and reminders.rows[1].processed_at == NOW
    assert not reminders.rows[2].processed

    # a second run finds nothing left to do
    assert service.process_pending(now=NOW).processed == 0


def test_students_with_final_submissions_or_opted_out_are_skipped():
    assignments = InMemoryAssignments(_assignment(due=NOW + timedelta(hours=20)))
    submitted = Submission(1, 1, 101, SubmissionStatus.SUBMITTED, False, 0, 0)
    draft = Submission(2, 1, 102, SubmissionStatus.DRAFT, False, 0, 0)
    service, reminders, prefs, notifier = _service(
        assignments,
        enrollments=[_enrollment(100), _enrollment(101), _enrollment(102), _enrollment(103), _enrollment(104, status=EnrollmentStatus.DROPPED)],
        submissions=[submitted, draft],
    )
    service.update_preferences(103, assignment_deadlines=False)
    service.update_preferences(100, email_notifications=False)
    reminders.upsert(assignment_id=1, reminder_type=ReminderType.DUE_IN_24_HOURS, scheduled_for=NOW - timedelta(hours=4))

    result = service.process_pending(now=NOW)

    # 100 in-app only, 102 (draft) in-app + email
    assert result.notifications_sent == 3
    assert sorted({n["user_id"] for n in notifier.sent}) == [100, 102]


def test_overdue_reminder_respects_active_extension():
    assignments = InMemoryAssignments(_assignment(due=NOW - timedelta(hours=2)))
    assignments.extensions[(1, 100)] = AssignmentExtension(1, 1, 100, NOW + timedelta(days=2))
    service, reminders, _, notifier = _service(assignments, enrollments=[_enrollment(100), _enrollment(101)])
    reminders.upsert(assignment_id=1, reminder_type=ReminderType.OVERDUE, scheduled_for=NOW - timedelta(hours=1))

    service.process_pending(now=NOW)

    assert {n["user_id"] for n in notifier.sent} == {101}
    assert notifier.sent[0]["title"] == "Assignment overdue: Essay 1"


def test_failed_reminder_stays_unprocessed_and_others_continue():
    assignments = InMemoryAssignments(_assignment(1, course_id=10), _assignment(2, course_id=20))
    service, reminders, _, notifier = _service(
        assignments,
        enrollments=[_enrollment(100, course_id=10), _enrollment(200, course_id=20)],
        notifier=RecordingNotifier(fail_for=(100,)),
    )
    reminders.upsert(assignment_id=1, reminder_type=ReminderType.DUE_IN_48_HOURS, scheduled_for=NOW - timedelta(minutes=5))
    reminders.upsert(assignment_id=2, reminder_type=ReminderType.DUE_IN_48_HOURS, scheduled_for=NOW - timedelta(minutes=1))

    result = service.process_pending(now=NOW)

    assert (result.processed, result.failed) == (1, 1)
    assert not reminders.rows[1].processed
    assert reminders.rows[2].processed
    assert reminders.rows[1].attempts == 1
    assert reminders.rows[2].attempts == 0


def test_reminder_failing_repeatedly_is_given_up_after_max_attempts():
    assignments = InMemoryAssignments(_assignment(1, course_id=10))
    service, reminders, _, _ = _service(
        assignments,
        enrollments=[_enrollment(100, course_id=10)],
        notifier=RecordingNotifier(fail_for=(100,)),
        max_attempts=2,
    )
    reminders.upsert(assignment_id=1, reminder_type=ReminderType.DUE_IN_48_HOURS, scheduled_for=NOW - timedelta(minutes=5))

    assert service.process_pending(now=NOW).failed == 1
    assert service.process_pending(now=NOW).failed == 1
    assert reminders.rows[1].attempts == 2

    # the row no longer occupies the batch
    assert service.process_pending(now=NOW).to_dict() == {"processed": 0, "failed": 0, "notifications_sent": 0}
    assert not reminders.rows[1].processed

    # rescheduling gives it a fresh budget
    reminders.upsert(assignment_id=1, reminder_type=ReminderType.DUE_IN_48_HOURS, scheduled_for=NOW - timedelta(minutes=1))
    assert reminders.rows[1].attempts == 0


def test_preferences_default_and_validate_time():
    service, _, _, _ = _service(InMemoryAssignments())

    assert service.get_preferences(5).to_dict() == {
        "user_id": 5,
        "assignment_deadlines": True,
        "email_notifications": True,
        "reminder_time": "09:00",
    }
    assert service.update_preferences(5, reminder_time="18:30").reminder_time == "18:30"
    with pytest.raises(ValidationError):
        service.update_preferences(5, reminder_time="25:00")
