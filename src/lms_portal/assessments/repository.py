from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Protocol, Sequence

from .model import Assessment, AssessmentAttempt


class AssessmentRepository(Protocol):
    def create(
        self,
        *,
        course_id: int,
        title: str,
        description: Optional[str],
        time_limit_minutes: Optional[int],
        max_attempts: int,
        passing_score: float,
        questions: Sequence[dict],
    ) -> int:
        """``questions`` items: ``{"type", "text", "points", "options", "correct_answer"}``."""

        raise NotImplementedError

    def get_by_id(self, assessment_id: int) -> Optional[Assessment]:
        raise NotImplementedError

    def set_published(self, assessment_id: int, is_published: bool) -> bool:
        raise NotImplementedError

    def list_for_course(self, course_id: int, *, published_only: bool = False) -> Sequence[Assessment]:
        raise NotImplementedError

    # Attempts
    def count_attempts(self, assessment_id: int, student_id: int) -> int:
        raise NotImplementedError

    def create_attempt(
        self,
        *,
        assessment_id: int,
        student_id: int,
        attempt_number: int,
        answers: Dict[str, Any],
        score: float,
        total_points: float,
        percentage: float,
        passed: bool,
        time_spent_seconds: Optional[int],
        submitted_at: datetime,
    ) -> int:
        raise NotImplementedError

    def get_attempt(self, attempt_id: int) -> Optional[AssessmentAttempt]:
        raise NotImplementedError

    def update_attempt_grade(
        self,
        attempt_id: int,
        *,
        manual_score: float,
        percentage: float,
        passed: bool,
        feedback: Optional[str],
        graded_at: datetime,
    ) -> bool:
        raise NotImplementedError

    def list_attempts(self, assessment_id: int, *, student_id: Optional[int] = None) -> Sequence[AssessmentAttempt]:
        raise NotImplementedError
