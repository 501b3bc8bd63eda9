from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty, require_range
from ..core.enums import EnrollmentStatus, QuestionType, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository
from ..enrollments.repository import EnrollmentRepository
from .model import Assessment, AssessmentAttempt, Question
from .repository import AssessmentRepository

logger = logging.getLogger(__name__)


def _normalize(value: Any) -> str:
    return str(value).strip().lower()


def score_answer(question: Question, answer: Any) -> float:
    """Points earned for one answer. Free-text questions score 0 until graded manually."""
    if answer is None or not question.auto_scored:
        return 0.0

    if question.question_type == QuestionType.MULTIPLE_SELECT:
        expected = question.correct_answer or []
        if not isinstance(answer, (list, tuple)) or len(answer) != len(expected):
            return 0.0
        given = {_normalize(a) for a in answer}
        return question.points if all(_normalize(e) in given for e in expected) else 0.0

    return question.points if _normalize(answer) == _normalize(question.correct_answer) else 0.0


def percentage_of(score: float, total: float) -> float:
    return round(score / total * 100, 2) if total > 0 else 0.0


class AssessmentService:
    def __init__(self, assessments: AssessmentRepository, courses: CourseRepository, enrollments: EnrollmentRepository):
        self._assessments = assessments
        self._courses = courses
        self._enrollments = enrollments

    def _check_owner(self, *, current_role: Role, current_user_id: int, course_id: int) -> None:
        course = self._courses.get_by_id(int(course_id))
        if not course:
            raise NotFoundError("Course not found")
        if current_role == Role.ADMIN:
            return
        if current_role != Role.INSTRUCTOR or course.instructor_id != int(current_user_id):
            raise AuthorizationError("You do not own this course")

    def get_assessment(self, assessment_id: int) -> Assessment:
        assessment = self._assessments.get_by_id(int(assessment_id))
        if not assessment:
            raise NotFoundError("Assessment not found")
        return assessment

    @staticmethod
    def _validate_question(index: int, q: Mapping[str, Any]) -> None:
        try:
            kind = QuestionType(q.get("type"))
        except ValueError:
            raise ValidationError(f"Question {index}: unknown type {q.get('type')!r}")
        require_non_empty(q.get("text", ""), f"question {index} text")
        if float(q.get("points", 1)) <= 0:
            raise ValidationError(f"Question {index}: points must be positive")

        answer = q.get("correct_answer")
        if kind in (QuestionType.MULTIPLE_CHOICE, QuestionType.MULTIPLE_SELECT):
            options = q.get("options") or []
            if len(options) < 2:
                raise ValidationError(f"Question {index}: at least two options are required")
            expected = answer if kind == QuestionType.MULTIPLE_SELECT else [answer]
            if not isinstance(expected, list) or not expected or any(a not in options for a in expected):
                raise ValidationError(f"Question {index}: correct answer must be one of the options")
        elif kind == QuestionType.TRUE_FALSE and _normalize(answer) not in ("true", "false"):
            raise ValidationError(f"Question {index}: correct answer must be true or false")

    def create_assessment(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        course_id: int,
        title: str,
        questions: Sequence[Mapping[str, Any]],
        description: Optional[str] = None,
        time_limit_minutes: Optional[int] = None,
        max_attempts: int = 1,
        passing_score: float = 60.0,
    ) -> Assessment:
        self._check_owner(current_role=current_role, current_user_id=current_user_id, course_id=course_id)
        title = require_non_empty(title, "title")
        require_range(int(max_attempts), "max_attempts", 1, 100)
        require_range(float(passing_score), "passing_score", 0, 100)
        if not questions:
            raise ValidationError("An assessment needs at least one question")
        for i, q in enumerate(questions, start=1):
            self._validate_question(i, q)

        assessment_id = self._assessments.create(
            course_id=int(course_id),
            title=title,
            description=description,
            time_limit_minutes=time_limit_minutes,
            max_attempts=int(max_attempts),
            passing_score=float(passing_score),
            questions=[dict(q) for q in questions],
        )
        return self.get_assessment(assessment_id)

    def publish_assessment(self, *, current_role: Role, current_user_id: int, assessment_id: int) -> Assessment:
        assessment = self.get_assessment(assessment_id)
        self._check_owner(current_role=current_role, current_user_id=current_user_id, course_id=assessment.course_id)
        self._assessments.set_published(assessment.assessment_id, True)
        return self.get_assessment(assessment.assessment_id)

    def list_for_course(self, *, course_id: int, published_only: bool = True) -> Sequence[Assessment]:
        return self._assessments.list_for_course(int(course_id), published_only=published_only)

    def list_for_owner(self, *, current_role: Role, current_user_id: int, course_id: int) -> Sequence[Assessment]:
        self._check_owner(current_role=current_role, current_user_id=current_user_id, course_id=course_id)
        return self._assessments.list_for_course(int(course_id))

    def submit_attempt(
        self,
        *,
        current_role: Role,
        student_id: int,
        assessment_id: int,
        answers: Mapping[Any, Any],
        time_spent_seconds: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> AssessmentAttempt:
        if current_role != Role.STUDENT:
            raise AuthorizationError("Only students can take assessments")

        assessment = self.get_assessment(assessment_id)
        if not assessment.is_published:
            raise ValidationError("Assessment is not available")

        enrollment = self._enrollments.get_for_user_and_course(int(student_id), assessment.course_id)
        if not enrollment or enrollment.status != EnrollmentStatus.ACTIVE:
            raise AuthorizationError("You must be actively enrolled in this course")

        used = self._assessments.count_attempts(assessment.assessment_id, int(student_id))
        if used >= assessment.max_attempts:
            raise ValidationError(f"Maximum attempts ({assessment.max_attempts}) reached")

        normalized: Dict[str, Any] = {str(k): v for k, v in (answers or {}).items()}
        score = sum(score_answer(q, normalized.get(str(q.question_id))) for q in assessment.questions)
        total = assessment.total_points
        percentage = percentage_of(score, total)

        attempt_id = self._assessments.create_attempt(
            assessment_id=assessment.assessment_id,
            student_id=int(student_id),
            attempt_number=used + 1,
            answers=normalized,
            score=score,
            total_points=total,
            percentage=percentage,
            passed=percentage >= assessment.passing_score,
            time_spent_seconds=time_spent_seconds,
            submitted_at=now or now_local(),
        )
        logger.info("assessment %s attempt %s by student %s: %.2f%%", assessment.assessment_id, used + 1, student_id, percentage)
        return self._assessments.get_attempt(attempt_id)

    def grade_attempt(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        attempt_id: int,
        manual_score: float,
        feedback: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AssessmentAttempt:
        attempt = self._assessments.get_attempt(int(attempt_id))
        if not attempt:
            raise NotFoundError("Attempt not found")
        assessment = self.get_assessment(attempt.assessment_id)
        self._check_owner(current_role=current_role, current_user_id=current_user_id, course_id=assessment.course_id)

        manual_points = sum(q.points for q in assessment.questions if not q.auto_scored)
        require_range(float(manual_score), "manual_score", 0, manual_points)

        percentage = percentage_of(attempt.score + float(manual_score), attempt.total_points)
        self._assessments.update_attempt_grade(
            attempt.attempt_id,
            manual_score=float(manual_score),
            percentage=percentage,
            passed=percentage >= assessment.passing_score,
            feedback=feedback,
            graded_at=now or now_local(),
        )
        return self._assessments.get_attempt(attempt.attempt_id)

    def list_attempts(self, *, current_role: Role, current_user_id: int, assessment_id: int) -> Sequence[AssessmentAttempt]:
        assessment = self.get_assessment(assessment_id)
        if current_role == Role.STUDENT:
            return self._assessments.list_attempts(assessment.assessment_id, student_id=int(current_user_id))
        self._check_owner(current_role=current_role, current_user_id=current_user_id, course_id=assessment.course_id)
        return self._assessments.list_attempts(assessment.assessment_id)

    def statistics(self, *, current_role: Role, current_user_id: int, assessment_id: int) -> dict:
        assessment = self.get_assessment(assessment_id)
        self._check_owner(current_role=current_role, current_user_id=current_user_id, course_id=assessment.course_id)

        attempts = self._assessments.list_attempts(assessment.assessment_id)
        if not attempts:
            return {
                "assessment_id": assessment.assessment_id,
                "total_attempts": 0,
                "unique_students": 0,
                "average_score": 0.0,
                "average_percentage": 0.0,
                "highest_percentage": 0.0,
                "lowest_percentage": 0.0,
                "pass_rate": 0.0,
            }

        scores = [a.final_score for a in attempts]
        percentages = [a.percentage for a in attempts]
        passed = sum(1 for a in attempts if a.passed)
        return {
            "assessment_id": assessment.assessment_id,
            "total_attempts": len(attempts),
            "unique_students": len({a.student_id for a in attempts}),
            "average_score": round(sum(scores) / len(scores), 2),
            "average_percentage": round(sum(percentages) / len(percentages), 2),
            "highest_percentage": round(max(percentages), 2),
            "lowest_percentage": round(min(percentages), 2),
            "pass_rate": round(passed / len(attempts) * 100, 2),
        }
