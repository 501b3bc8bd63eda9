from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from ..core.enums import QuestionType


@dataclass(frozen=True)
class Question:
    question_id: int
    question_type: QuestionType
    text: str
    points: float
    position: int
    options: Optional[Tuple[str, ...]] = None
    correct_answer: Any = None

    @property
    def auto_scored(self) -> bool:
        return self.question_type not in (QuestionType.SHORT_ANSWER, QuestionType.ESSAY)

    def to_dict(self, *, include_answer: bool = False) -> dict:
        data = {
            "id": self.question_id,
            "type": self.question_type.value,
            "text": self.text,
            "points": self.points,
            "position": self.position,
            "options": list(self.options) if self.options else None,
        }
        if include_answer:
            data["correct_answer"] = self.correct_answer
        return data


@dataclass(frozen=True)
class Assessment:
    assessment_id: int
    course_id: int
    title: str
    max_attempts: int
    passing_score: float
    is_published: bool
    created_at: datetime
    questions: Tuple[Question, ...] = ()
    description: Optional[str] = None
    time_limit_minutes: Optional[int] = None

    @property
    def total_points(self) -> float:
        return float(sum(q.points for q in self.questions))

    def to_dict(self, *, include_answers: bool = False) -> dict:
        return {
            "id": self.assessment_id,
            "course_id": self.course_id,
            "title": self.title,
            "description": self.description,
            "time_limit_minutes": self.time_limit_minutes,
            "max_attempts": self.max_attempts,
            "passing_score": self.passing_score,
            "is_published": self.is_published,
            "total_points": self.total_points,
            "questions": [q.to_dict(include_answer=include_answers) for q in self.questions],
        }


@dataclass(frozen=True)
class AssessmentAttempt:
    attempt_id: int
    assessment_id: int
    student_id: int
    attempt_number: int
    answers: Dict[str, Any]
    score: float
    total_points: float
    percentage: float
    passed: bool
    submitted_at: datetime
    time_spent_seconds: Optional[int] = None
    manual_score: Optional[float] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None

    @property
    def final_score(self) -> float:
        return self.score + (self.manual_score or 0.0)

    def to_dict(self) -> dict:
        return {
            "id": self.attempt_id,
            "assessment_id": self.assessment_id,
            "student_id": self.student_id,
            "attempt_number": self.attempt_number,
            "answers": self.answers,
            "score": self.score,
            "manual_score": self.manual_score,
            "final_score": self.final_score,
            "total_points": self.total_points,
            "percentage": self.percentage,
            "passed": self.passed,
            "time_spent_seconds": self.time_spent_seconds,
            "feedback": self.feedback,
            "submitted_at": self.submitted_at.isoformat(),
            "graded_at": self.graded_at.isoformat() if self.graded_at else None,
        }
