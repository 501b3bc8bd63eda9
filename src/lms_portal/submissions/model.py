from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import SubmissionStatus


@dataclass(frozen=True)
class Submission:
    submission_id: int
    assignment_id: int
    student_id: int
    status: SubmissionStatus
    is_late: bool
    days_late: int
    resubmission_count: int
    text: Optional[str] = None
    grade: Optional[float] = None
    original_score: Optional[float] = None
    final_score: Optional[float] = None
    feedback: Optional[str] = None
    submitted_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None
    graded_by: Optional[int] = None
    student_name: Optional[str] = None
    student_email: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.status != SubmissionStatus.DRAFT

    def to_dict(self) -> dict:
        return {
            "id": self.submission_id,
            "assignment_id": self.assignment_id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "student_email": self.student_email,
            "status": self.status.value,
            "text": self.text,
            "is_late": self.is_late,
            "days_late": self.days_late,
            "grade": self.grade,
            "original_score": self.original_score,
            "final_score": self.final_score,
            "feedback": self.feedback,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "graded_at": self.graded_at.isoformat() if self.graded_at else None,
            "graded_by": self.graded_by,
            "resubmission_count": self.resubmission_count,
        }


@dataclass(frozen=True)
class GradingHistoryEntry:
    history_id: int
    submission_id: int
    previous_grade: Optional[float]
    new_grade: float
    previous_feedback: Optional[str]
    new_feedback: Optional[str]
    graded_by: int
    graded_at: datetime
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.history_id,
            "submission_id": self.submission_id,
            "previous_grade": self.previous_grade,
            "new_grade": self.new_grade,
            "previous_feedback": self.previous_feedback,
            "new_feedback": self.new_feedback,
            "graded_by": self.graded_by,
            "graded_at": self.graded_at.isoformat(),
            "reason": self.reason,
        }
