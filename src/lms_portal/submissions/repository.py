from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import SubmissionStatus
from .model import GradingHistoryEntry, Submission


class SubmissionRepository(Protocol):
    def get_by_id(self, submission_id: int) -> Optional[Submission]:
        raise NotImplementedError

    def get_for_student(self, assignment_id: int, student_id: int) -> Optional[Submission]:
        raise NotImplementedError

    def save(
        self,
        *,
        assignment_id: int,
        student_id: int,
        text: Optional[str],
        status: SubmissionStatus,
        is_late: bool,
        days_late: int,
        submitted_at: Optional[datetime],
        resubmission_count: int,
    ) -> int:
        """Insert or update the (assignment, student) submission.

        Saving a SUBMITTED version clears the grade of any earlier version.
        """

        raise NotImplementedError

    def record_grade(
        self,
        submission_id: int,
        *,
        grade: float,
        original_score: float,
        final_score: float,
        feedback: Optional[str],
        status: SubmissionStatus,
        graded_by: int,
        graded_at: datetime,
    ) -> bool:
        raise NotImplementedError

    def list_for_assignment(self, assignment_id: int, *, status: Optional[SubmissionStatus] = None) -> Sequence[Submission]:
        raise NotImplementedError

    def list_for_student(self, student_id: int) -> Sequence[Submission]:
        raise NotImplementedError

    def count_for_assignment(self, assignment_id: int) -> int:
        raise NotImplementedError

    def count_pending_for_instructor(self, instructor_id: int) -> int:
        """SUBMITTED (not yet graded) submissions on the instructor's assignments."""

        raise NotImplementedError

    def graded_scores_for_instructor(self, instructor_id: int) -> Sequence[float]:
        """Final score as a percentage of total points, for every graded submission."""

        raise NotImplementedError

    # Grading history
    def add_history(
        self,
        *,
        submission_id: int,
        previous_grade: Optional[float],
        new_grade: float,
        previous_feedback: Optional[str],
        new_feedback: Optional[str],
        graded_by: int,
        graded_at: datetime,
        reason: Optional[str],
    ) -> int:
        raise NotImplementedError

    def list_history(self, submission_id: int) -> Sequence[GradingHistoryEntry]:
        raise NotImplementedError
