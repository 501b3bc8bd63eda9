from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from lms_portal.assignments.model import Assignment, AssignmentExtension
from lms_portal.audit.model import AuditEntry
from lms_portal.common.cache import CacheKeys, TTLCache
from lms_portal.core.enums import AuditAction, EnrollmentStatus, ResourceType, SubmissionStatus
from lms_portal.dashboards.service import ADMIN_STATS_TTL_SECONDS, DashboardService
from lms_portal.enrollments.model import Enrollment
from lms_portal.submissions.model import Submission

NOW = datetime(2026, 3, 2, 9, 0)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class CountingUsers:
    def __init__(self):
        self.calls = 0
        self.by_role = {"STUDENT": 3, "INSTRUCTOR": 1, "ADMIN": 1}

    def count_by_role(self):
        self.calls += 1
        return dict(self.by_role)


class CountingCourses:
    def __init__(self):
        self.calls = 0

    def count_by_status(self):
        self.calls += 1
        return {"PUBLISHED": 2, "DRAFT": 1}


class FixedPayments:
    def total_revenue(self) -> float:
        return 1234.567


class InMemoryAudit:
    def __init__(self):
        self.entries = []

    def list_logs(self, *, limit=50, offset=0, **_):
        return self.entries[offset : offset + limit]


class InMemoryEnrollments:
    def __init__(self, *enrollments: Enrollment):
        self.rows = list(enrollments)

    def list_for_user(self, user_id):
        return [e for e in self.rows if e.user_id == user_id]


class InMemoryAssignments:
    def __init__(self, *assignments: Assignment):
        self.rows = list(assignments)
        self.extensions: dict[tuple[int, int], AssignmentExtension] = {}

    def list_due_between(self, course_ids, start, end):
        return [a for a in self.rows if a.course_id in course_ids and a.is_published and start <= a.due_date <= end]

    def get_extension(self, assignment_id, student_id) -> Optional[AssignmentExtension]:
        return self.extensions.get((assignment_id, student_id))


class InMemorySubmissions:
    def __init__(self, *submissions: Submission):
        self.rows = {(s.assignment_id, s.student_id): s for s in submissions}

    def get_for_student(self, assignment_id, student_id) -> Optional[Submission]:
        return self.rows.get((assignment_id, student_id))


class UnreadCounter:
    def count_unread(self, user_id) -> int:
        return 4


def _assignment(assignment_id, due, *, course_id=10) -> Assignment:
    return Assignment(
        assignment_id=assignment_id,
        course_id=course_id,
        instructor_id=2,
        title=f"Task {assignment_id}",
        description="",
        due_date=due,
        total_points=100,
        allow_late_submission=False,
        late_penalty=None,
        max_files=1,
        is_published=True,
        graded_count=0,
        created_at=NOW - timedelta(days=30),
    )


def _service(*, users=None, courses=None, audit=None, cache=None, enrollments=(), assignments=None, submissions=()):
    return DashboardService(
        users=users or CountingUsers(),
        courses=courses or CountingCourses(),
        enrollments=InMemoryEnrollments(*enrollments),
        assignments=assignments or InMemoryAssignments(),
        submissions=InMemorySubmissions(*submissions),
        notifications=UnreadCounter(),
        payments=FixedPayments(),
        audit=audit or InMemoryAudit(),
        cache=cache or TTLCache(default_ttl=300, clock=FakeClock()),
    )


def test_admin_stats_are_cached_but_activity_is_live():
    users, courses, audit = CountingUsers(), CountingCourses(), InMemoryAudit()
    clock = FakeClock()
    cache = TTLCache(default_ttl=300, clock=clock)
    service = _service(users=users, courses=courses, audit=audit, cache=cache)

    first = service.admin()
    assert first["users"] == {"total": 5, "by_role": {"STUDENT": 3, "INSTRUCTOR": 1, "ADMIN": 1}}
    assert first["courses"]["total"] == 3
    assert first["revenue"] == 1234.57
    assert first["recent_activity"] == []

    users.by_role["STUDENT"] = 4
    audit.entries.append(AuditEntry(1, 1, AuditAction.USER_LOGIN, ResourceType.USER, "1", None, None, NOW))
    second = service.admin()

    assert (users.calls, courses.calls) == (1, 1)
    assert second["users"]["total"] == 5
    assert len(second["recent_activity"]) == 1

    clock.now += ADMIN_STATS_TTL_SECONDS + 1
    assert service.admin()["users"]["total"] == 6
    assert users.calls == 2


def test_admin_stats_recomputed_after_invalidation():
    users = CountingUsers()
    cache = TTLCache(default_ttl=300, clock=FakeClock())
    service = _service(users=users, cache=cache)

    service.admin()
    cache.delete(CacheKeys.stats("admin"))
    service.admin()

    assert users.calls == 2


def test_student_dashboard_lists_open_deadlines_with_extensions():
    assignments = InMemoryAssignments(
        _assignment(1, NOW + timedelta(days=2)),
        _assignment(2, NOW + timedelta(days=1)),
        _assignment(3, NOW - timedelta(days=1)),
        _assignment(4, NOW + timedelta(days=30)),
        _assignment(5, NOW + timedelta(days=3), course_id=20),
    )
    assignments.extensions[(3, 7)] = AssignmentExtension(1, 3, 7, NOW + timedelta(days=5))
    service = _service(
        enrollments=[
            Enrollment(1, 7, 10, EnrollmentStatus.ACTIVE, 40, NOW - timedelta(days=9)),
            Enrollment(2, 7, 20, EnrollmentStatus.PENDING, 0, NOW - timedelta(days=9)),
            Enrollment(3, 7, 30, EnrollmentStatus.DROPPED, 0, NOW - timedelta(days=9)),
        ],
        assignments=assignments,
        submissions=[Submission(1, 2, 7, SubmissionStatus.SUBMITTED, False, 0, 0)],
    )

    dashboard = service.student(student_id=7, now=NOW)

    assert dashboard["enrolled_courses"] == 2
    assert dashboard["average_progress"] == 20
    assert dashboard["unread_notifications"] == 4
    assert [(d["assignment_id"], d["due_date"]) for d in dashboard["upcoming_deadlines"]] == [
        (1, (NOW + timedelta(days=2)).isoformat()),
        (3, (NOW + timedelta(days=5)).isoformat()),
    ]
