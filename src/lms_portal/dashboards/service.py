from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from ..assignments.repository import AssignmentRepository
from ..assignments.service import effective_due_date
from ..audit.repository import AuditRepository
from ..common.cache import CacheKeys, TTLCache
from ..common.datetime_utils import now_local
from ..core.constants import UPCOMING_DEADLINE_DAYS
from ..core.enums import EnrollmentStatus
from ..courses.repository import CourseRepository
from ..enrollments.repository import EnrollmentRepository
from ..notifications.repository import NotificationRepository
from ..payments.repository import PaymentRepository
from ..submissions.repository import SubmissionRepository
from ..users.repository import UserRepository

ADMIN_STATS_TTL_SECONDS = 60


class DashboardService:
    """Read-only summaries for the three role dashboards."""

    def __init__(
        self,
        *,
        users: UserRepository,
        courses: CourseRepository,
        enrollments: EnrollmentRepository,
        assignments: AssignmentRepository,
        submissions: SubmissionRepository,
        notifications: NotificationRepository,
        payments: PaymentRepository,
        audit: AuditRepository,
        cache: TTLCache,
    ):
        self._users = users
        self._courses = courses
        self._enrollments = enrollments
        self._assignments = assignments
        self._submissions = submissions
        self._notifications = notifications
        self._payments = payments
        self._audit = audit
        self._cache = cache

    def student(self, *, student_id: int, now: Optional[datetime] = None) -> dict:
        now = now or now_local()
        enrollments = [
            e for e in self._enrollments.list_for_user(int(student_id)) if e.status != EnrollmentStatus.DROPPED
        ]
        active_course_ids = [
            e.course_id for e in enrollments if e.status in (EnrollmentStatus.ACTIVE, EnrollmentStatus.COMPLETED)
        ]

        horizon = now + timedelta(days=UPCOMING_DEADLINE_DAYS)
        upcoming = []
        # Widen the window backwards so extended deadlines are still picked up.
        for assignment in self._assignments.list_due_between(active_course_ids, now - timedelta(days=30), horizon):
            extension = self._assignments.get_extension(assignment.assignment_id, int(student_id))
            due = effective_due_date(assignment, extension)
            if not (now <= due <= horizon):
                continue
            submission = self._submissions.get_for_student(assignment.assignment_id, int(student_id))
            if submission and submission.is_final:
                continue
            upcoming.append(
                {
                    "assignment_id": assignment.assignment_id,
                    "title": assignment.title,
                    "course_id": assignment.course_id,
                    "course_title": assignment.course_title,
                    "due_date": due.isoformat(),
                }
            )
        upcoming.sort(key=lambda r: r["due_date"])

        progress = [e.progress for e in enrollments]
        return {
            "enrollments": [e.to_dict() for e in enrollments],
            "enrolled_courses": len(enrollments),
            "completed_courses": sum(1 for e in enrollments if e.status == EnrollmentStatus.COMPLETED),
            "average_progress": round(sum(progress) / len(progress), 2) if progress else 0,
            "upcoming_deadlines": upcoming,
            "unread_notifications": self._notifications.count_unread(int(student_id)),
        }

    def instructor(self, *, instructor_id: int) -> dict:
        courses = self._courses.list_courses(instructor_id=int(instructor_id))
        students = set()
        for course in courses:
            for enrollment in self._enrollments.list_for_course(course.course_id):
                if enrollment.status != EnrollmentStatus.DROPPED:
                    students.add(enrollment.user_id)

        scores = self._submissions.graded_scores_for_instructor(int(instructor_id))
        return {
            "courses": [c.to_dict() for c in courses],
            "total_courses": len(courses),
            "total_students": len(students),
            "pending_grading": self._submissions.count_pending_for_instructor(int(instructor_id)),
            "average_grade": round(sum(scores) / len(scores), 2) if scores else None,
        }

    def admin(self) -> dict:
        stats = self._cache.get_or_set(CacheKeys.stats("admin"), self._admin_stats, ADMIN_STATS_TTL_SECONDS)
        recent = self._audit.list_logs(limit=10, offset=0)
        return {**stats, "recent_activity": [entry.to_dict() for entry in recent]}

    def _admin_stats(self) -> dict:
        users_by_role = self._users.count_by_role()
        courses_by_status = self._courses.count_by_status()
        return {
            "users": {"total": sum(users_by_role.values()), "by_role": users_by_role},
            "courses": {"total": sum(courses_by_status.values()), "by_status": courses_by_status},
            "revenue": round(self._payments.total_revenue(), 2),
        }
