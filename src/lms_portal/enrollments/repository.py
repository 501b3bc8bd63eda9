from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import EnrollmentStatus
from .model import Enrollment


class EnrollmentRepository(Protocol):
    def get_by_id(self, enrollment_id: int) -> Optional[Enrollment]:
        raise NotImplementedError

    def get_for_user_and_course(self, user_id: int, course_id: int) -> Optional[Enrollment]:
        raise NotImplementedError

    def create(self, *, user_id: int, course_id: int, status: EnrollmentStatus, enrolled_at: datetime) -> int:
        raise NotImplementedError

    def set_status(self, enrollment_id: int, status: EnrollmentStatus, *, completed_at: Optional[datetime] = None) -> bool:
        raise NotImplementedError

    def set_progress(self, enrollment_id: int, progress: int) -> bool:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[Enrollment]:
        raise NotImplementedError

    def list_for_course(self, course_id: int, *, status: Optional[EnrollmentStatus] = None) -> Sequence[Enrollment]:
        raise NotImplementedError

    def add_completion(self, *, enrollment_id: int, lesson_id: int, completed_at: datetime) -> bool:
        """Return False when the lesson was already completed."""

        raise NotImplementedError

    def count_completed_lessons(self, enrollment_id: int, *, published_only: bool = True) -> int:
        raise NotImplementedError
