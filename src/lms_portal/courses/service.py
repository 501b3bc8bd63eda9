from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..common.cache import CacheKeys, TTLCache, invalidate_course
from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty, require_range, slugify
from ..core.enums import CourseStatus, Role
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..payments.installments import get_plan
from .model import Course, Lesson
from .repository import CourseRepository

logger = logging.getLogger(__name__)

_EDITABLE_STATUSES = {CourseStatus.DRAFT, CourseStatus.REJECTED, CourseStatus.PUBLISHED}


class CourseService:
    def __init__(self, courses: CourseRepository, cache: TTLCache):
        self._courses = courses
        self._cache = cache

    def get_course(self, course_id: int) -> Course:
        course = self._cache.get_or_set(CacheKeys.course(int(course_id)), lambda: self._courses.get_by_id(int(course_id)))
        if not course:
            raise NotFoundError("Course not found")
        return course

    def _owned_course(self, *, current_role: Role, current_user_id: int, course_id: int) -> Course:
        course = self._courses.get_by_id(int(course_id))
        if not course:
            raise NotFoundError("Course not found")
        if current_role == Role.ADMIN:
            return course
        if current_role != Role.INSTRUCTOR or course.instructor_id != int(current_user_id):
            raise AuthorizationError("You do not own this course")
        return course

    def create_course(
        self,
        *,
        current_role: Role,
        instructor_id: int,
        title: str,
        description: str = "",
        category: Optional[str] = None,
        price: float = 0.0,
        application_fee: float = 0.0,
        slug: Optional[str] = None,
        installment_plan: str = "standard",
    ) -> Course:
        if current_role not in (Role.INSTRUCTOR, Role.ADMIN):
            raise AuthorizationError("Only instructors can create courses")

        title = require_non_empty(title, "title")
        require_range(float(price), "price", 0, 10_000_000)
        require_range(float(application_fee), "application_fee", 0, 10_000_000)
        get_plan(installment_plan)

        slug = slugify(slug or title)
        if self._courses.get_by_slug(slug):
            raise ConflictError("A course with this slug already exists")

        course_id = self._courses.create_course(
            instructor_id=int(instructor_id),
            title=title,
            slug=slug,
            description=(description or "").strip(),
            category=(category or "").strip() or None,
            price=float(price),
            application_fee=float(application_fee),
            installment_plan=installment_plan,
        )
        invalidate_course(self._cache, course_id)
        logger.info("course created id=%s slug=%s instructor=%s", course_id, slug, instructor_id)
        return self._courses.get_by_id(course_id)

    def update_course(self, *, current_role: Role, current_user_id: int, course_id: int, **changes) -> Course:
        course = self._owned_course(current_role=current_role, current_user_id=current_user_id, course_id=course_id)
        if course.status not in _EDITABLE_STATUSES:
            raise ValidationError(f"Course cannot be edited while {course.status.value}")

        if changes.get("title") is not None:
            changes["title"] = require_non_empty(changes["title"], "title")
        if changes.get("price") is not None:
            require_range(float(changes["price"]), "price", 0, 10_000_000)
        if changes.get("application_fee") is not None:
            require_range(float(changes["application_fee"]), "application_fee", 0, 10_000_000)
        if changes.get("installment_plan") is not None:
            get_plan(changes["installment_plan"])
        if changes.get("slug") is not None:
            changes["slug"] = slugify(changes["slug"])
            other = self._courses.get_by_slug(changes["slug"])
            if other and other.course_id != course.course_id:
                raise ConflictError("A course with this slug already exists")

        self._courses.update_course(course.course_id, **changes)
        invalidate_course(self._cache, course.course_id)
        return self._courses.get_by_id(course.course_id)

    def submit_for_approval(self, *, current_role: Role, current_user_id: int, course_id: int) -> Course:
        course = self._owned_course(current_role=current_role, current_user_id=current_user_id, course_id=course_id)
        if course.status not in (CourseStatus.DRAFT, CourseStatus.REJECTED):
            raise ValidationError("Only draft or rejected courses can be submitted for approval")
        self._courses.set_status(course.course_id, CourseStatus.PENDING_APPROVAL)
        invalidate_course(self._cache, course.course_id)
        return self._courses.get_by_id(course.course_id)

    def approve_course(self, *, current_role: Role, course_id: int, now: Optional[datetime] = None) -> Course:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Insufficient permissions")
        course = self._courses.get_by_id(int(course_id))
        if not course:
            raise NotFoundError("Course not found")
        if course.status != CourseStatus.PENDING_APPROVAL:
            raise ValidationError("Only courses pending approval can be approved")
        self._courses.set_status(course.course_id, CourseStatus.PUBLISHED, published_at=now or now_local())
        invalidate_course(self._cache, course.course_id)
        return self._courses.get_by_id(course.course_id)

    def reject_course(self, *, current_role: Role, course_id: int, reason: str) -> Course:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Insufficient permissions")
        reason = require_non_empty(reason, "reason")
        course = self._courses.get_by_id(int(course_id))
        if not course:
            raise NotFoundError("Course not found")
        if course.status != CourseStatus.PENDING_APPROVAL:
            raise ValidationError("Only courses pending approval can be rejected")
        self._courses.set_status(course.course_id, CourseStatus.REJECTED, rejection_reason=reason)
        invalidate_course(self._cache, course.course_id)
        return self._courses.get_by_id(course.course_id)

    def archive_course(self, *, current_role: Role, current_user_id: int, course_id: int) -> Course:
        course = self._owned_course(current_role=current_role, current_user_id=current_user_id, course_id=course_id)
        if course.status == CourseStatus.ARCHIVED:
            raise ValidationError("Course is already archived")
        self._courses.set_status(course.course_id, CourseStatus.ARCHIVED)
        invalidate_course(self._cache, course.course_id)
        return self._courses.get_by_id(course.course_id)

    def delete_course(self, *, current_role: Role, current_user_id: int, course_id: int) -> None:
        course = self._owned_course(current_role=current_role, current_user_id=current_user_id, course_id=course_id)
        if self._courses.count_enrollments(course.course_id) > 0:
            raise ValidationError("Cannot delete a course that has enrollments; archive it instead")
        self._courses.delete_course(course.course_id)
        invalidate_course(self._cache, course.course_id)

    def list_catalog(self, *, category: Optional[str] = None) -> Sequence[Course]:
        return self._cache.get_or_set(
            CacheKeys.catalog(category),
            lambda: list(self._courses.list_courses(status=CourseStatus.PUBLISHED, category=category)),
        )

    def list_instructor_courses(self, *, instructor_id: int) -> Sequence[Course]:
        return self._courses.list_courses(instructor_id=int(instructor_id))

    def list_all(self, *, current_role: Role, status: Optional[CourseStatus] = None) -> Sequence[Course]:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Insufficient permissions")
        return self._courses.list_courses(status=status)

    def add_lesson(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        course_id: int,
        title: str,
        content: Optional[str] = None,
        position: Optional[int] = None,
        is_published: bool = True,
    ) -> Lesson:
        course = self._owned_course(current_role=current_role, current_user_id=current_user_id, course_id=course_id)
        title = require_non_empty(title, "title")
        if position is None:
            position = len(self._courses.list_lessons(course.course_id)) + 1
        lesson_id = self._courses.add_lesson(
            course_id=course.course_id, title=title, content=content, position=int(position), is_published=is_published
        )
        return next(l for l in self._courses.list_lessons(course.course_id) if l.lesson_id == lesson_id)

    def list_lessons(self, course_id: int, *, published_only: bool = True) -> Sequence[Lesson]:
        return self._courses.list_lessons(int(course_id), published_only=published_only)
