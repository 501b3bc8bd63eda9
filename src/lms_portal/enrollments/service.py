from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.enums import CourseStatus, EnrollmentStatus, Role
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository
from .model import Enrollment
from .repository import EnrollmentRepository

logger = logging.getLogger(__name__)


def compute_progress(completed: int, total_lessons: int) -> int:
    if total_lessons <= 0:
        return 0
    return min(100, round(completed / total_lessons * 100))


class EnrollmentService:
    def __init__(self, enrollments: EnrollmentRepository, courses: CourseRepository):
        self._enrollments = enrollments
        self._courses = courses

    def enroll(self, *, current_role: Role, student_id: int, course_id: int, now: Optional[datetime] = None) -> Enrollment:
        if current_role != Role.STUDENT:
            raise AuthorizationError("Only students can enroll in courses")

        course = self._courses.get_by_id(int(course_id))
        if not course:
            raise NotFoundError("Course not found")
        if course.status != CourseStatus.PUBLISHED:
            raise ValidationError("Course is not open for enrollment")
        if self._enrollments.get_for_user_and_course(int(student_id), course.course_id):
            raise ConflictError("Already enrolled in this course")

        # Paid courses wait for tuition before the enrollment becomes ACTIVE.
        status = EnrollmentStatus.ACTIVE if course.is_free else EnrollmentStatus.PENDING
        enrollment_id = self._enrollments.create(
            user_id=int(student_id), course_id=course.course_id, status=status, enrolled_at=now or now_local()
        )
        logger.info("enrollment %s created user=%s course=%s status=%s", enrollment_id, student_id, course_id, status.value)
        return self._enrollments.get_by_id(enrollment_id)

    def activate(self, *, user_id: int, course_id: int) -> Optional[Enrollment]:
        """Activate (or create active) the enrollment once tuition is paid."""
        enrollment = self._enrollments.get_for_user_and_course(int(user_id), int(course_id))
        if not enrollment:
            enrollment_id = self._enrollments.create(
                user_id=int(user_id), course_id=int(course_id), status=EnrollmentStatus.ACTIVE, enrolled_at=now_local()
            )
            return self._enrollments.get_by_id(enrollment_id)
        if enrollment.status in (EnrollmentStatus.PENDING, EnrollmentStatus.SUSPENDED):
            self._enrollments.set_status(enrollment.enrollment_id, EnrollmentStatus.ACTIVE)
        return self._enrollments.get_by_id(enrollment.enrollment_id)

    def suspend(self, *, user_id: int, course_id: int) -> Optional[Enrollment]:
        """Withdraw course access after the tuition behind it was refunded."""
        enrollment = self._enrollments.get_for_user_and_course(int(user_id), int(course_id))
        if not enrollment or enrollment.status not in (EnrollmentStatus.PENDING, EnrollmentStatus.ACTIVE):
            return enrollment
        self._enrollments.set_status(enrollment.enrollment_id, EnrollmentStatus.SUSPENDED)
        logger.info("enrollment %s suspended user=%s course=%s", enrollment.enrollment_id, user_id, course_id)
        return self._enrollments.get_by_id(enrollment.enrollment_id)

    def complete_lesson(
        self, *, student_id: int, enrollment_id: int, lesson_id: int, now: Optional[datetime] = None
    ) -> Enrollment:
        enrollment = self._enrollments.get_by_id(int(enrollment_id))
        if not enrollment:
            raise NotFoundError("Enrollment not found")
        if enrollment.user_id != int(student_id):
            raise AuthorizationError("Not your enrollment")
        if enrollment.status != EnrollmentStatus.ACTIVE:
            raise ValidationError("Enrollment is not active")

        lessons = self._courses.list_lessons(enrollment.course_id, published_only=True)
        if int(lesson_id) not in {l.lesson_id for l in lessons}:
            raise NotFoundError("Lesson not found in this course")

        now = now or now_local()
        self._enrollments.add_completion(enrollment_id=enrollment.enrollment_id, lesson_id=int(lesson_id), completed_at=now)
        completed = self._enrollments.count_completed_lessons(enrollment.enrollment_id)
        progress = compute_progress(completed, len(lessons))
        self._enrollments.set_progress(enrollment.enrollment_id, progress)
        if progress >= 100:
            self._enrollments.set_status(enrollment.enrollment_id, EnrollmentStatus.COMPLETED, completed_at=now)
        return self._enrollments.get_by_id(enrollment.enrollment_id)

    def list_for_student(self, *, student_id: int) -> Sequence[Enrollment]:
        return self._enrollments.list_for_user(int(student_id))

    def list_for_course(self, *, current_role: Role, current_user_id: int, course_id: int) -> Sequence[Enrollment]:
        course = self._courses.get_by_id(int(course_id))
        if not course:
            raise NotFoundError("Course not found")
        if current_role != Role.ADMIN and course.instructor_id != int(current_user_id):
            raise AuthorizationError("You do not own this course")
        return self._enrollments.list_for_course(course.course_id)

    def is_active_student(self, *, student_id: int, course_id: int) -> bool:
        enrollment = self._enrollments.get_for_user_and_course(int(student_id), int(course_id))
        return bool(enrollment and enrollment.status == EnrollmentStatus.ACTIVE)

    def drop(self, *, student_id: int, enrollment_id: int) -> Enrollment:
        enrollment = self._enrollments.get_by_id(int(enrollment_id))
        if not enrollment:
            raise NotFoundError("Enrollment not found")
        if enrollment.user_id != int(student_id):
            raise AuthorizationError("Not your enrollment")
        if enrollment.status in (EnrollmentStatus.COMPLETED, EnrollmentStatus.DROPPED):
            raise ValidationError(f"Enrollment is already {enrollment.status.value}")
        self._enrollments.set_status(enrollment.enrollment_id, EnrollmentStatus.DROPPED)
        return self._enrollments.get_by_id(enrollment.enrollment_id)
