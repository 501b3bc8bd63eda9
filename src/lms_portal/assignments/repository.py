from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Assignment, AssignmentExtension


class AssignmentRepository(Protocol):
    def get_by_id(self, assignment_id: int) -> Optional[Assignment]:
        raise NotImplementedError

    def create(
        self,
        *,
        course_id: int,
        instructor_id: int,
        title: str,
        description: str,
        instructions: Optional[str],
        due_date: datetime,
        total_points: int,
        allow_late_submission: bool,
        late_penalty: Optional[float],
        max_files: int,
    ) -> int:
        """Insert an unpublished assignment."""

        raise NotImplementedError

    def update(self, assignment_id: int, **fields) -> bool:
        raise NotImplementedError

    def set_published(self, assignment_id: int, is_published: bool) -> bool:
        raise NotImplementedError

    def delete(self, assignment_id: int) -> bool:
        raise NotImplementedError

    def increment_graded_count(self, assignment_id: int) -> None:
        raise NotImplementedError

    def list_for_course(self, course_id: int, *, published_only: bool = False) -> Sequence[Assignment]:
        raise NotImplementedError

    def list_for_instructor(self, instructor_id: int) -> Sequence[Assignment]:
        raise NotImplementedError

    def list_due_between(self, course_ids: Sequence[int], start: datetime, end: datetime) -> Sequence[Assignment]:
        """Published assignments of the given courses due in [start, end]."""

        raise NotImplementedError

    # Extensions
    def get_extension(self, assignment_id: int, student_id: int) -> Optional[AssignmentExtension]:
        raise NotImplementedError

    def save_extension(
        self,
        *,
        assignment_id: int,
        student_id: int,
        new_due_date: datetime,
        reason: Optional[str],
        granted_by: int,
    ) -> int:
        raise NotImplementedError
