from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Protocol, Sequence

from ..core.enums import CourseStatus
from .model import Course, Lesson


class CourseRepository(Protocol):
    def get_by_id(self, course_id: int) -> Optional[Course]:
        raise NotImplementedError

    def get_by_slug(self, slug: str) -> Optional[Course]:
        raise NotImplementedError

    def create_course(
        self,
        *,
        instructor_id: int,
        title: str,
        slug: str,
        description: str,
        category: Optional[str],
        price: float,
        application_fee: float,
        installment_plan: str,
    ) -> int:
        raise NotImplementedError

    def update_course(self, course_id: int, **fields) -> bool:
        """Update plain columns (title, description, category, price, ...)."""

        raise NotImplementedError

    def set_status(
        self,
        course_id: int,
        status: CourseStatus,
        *,
        published_at: Optional[datetime] = None,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError

    def delete_course(self, course_id: int) -> bool:
        raise NotImplementedError

    def list_courses(
        self,
        *,
        status: Optional[CourseStatus] = None,
        category: Optional[str] = None,
        instructor_id: Optional[int] = None,
    ) -> Sequence[Course]:
        raise NotImplementedError

    def count_enrollments(self, course_id: int) -> int:
        raise NotImplementedError

    def count_by_status(self) -> Dict[str, int]:
        raise NotImplementedError

    # Lessons
    def add_lesson(self, *, course_id: int, title: str, content: Optional[str], position: int, is_published: bool) -> int:
        raise NotImplementedError

    def list_lessons(self, course_id: int, *, published_only: bool = False) -> Sequence[Lesson]:
        raise NotImplementedError
