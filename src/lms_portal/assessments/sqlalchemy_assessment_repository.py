from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import QuestionType
from ..database import orm
from ..database.session import session_scope
from ..extensions import db
from .model import Assessment, AssessmentAttempt, Question
from .repository import AssessmentRepository


def _to_assessment(row: orm.Assessment) -> Assessment:
    return Assessment(
        assessment_id=int(row.id),
        course_id=int(row.course_id),
        title=row.title,
        description=row.description,
        time_limit_minutes=row.time_limit_minutes,
        max_attempts=int(row.max_attempts),
        passing_score=float(row.passing_score),
        is_published=bool(row.is_published),
        created_at=row.created_at,
        questions=tuple(
            Question(
                question_id=int(q.id),
                question_type=QuestionType(q.question_type),
                text=q.text,
                points=float(q.points),
                position=int(q.position),
                options=tuple(q.options) if q.options else None,
                correct_answer=q.correct_answer,
            )
            for q in row.questions
        ),
    )


def _to_attempt(row: orm.AssessmentAttempt) -> AssessmentAttempt:
    return AssessmentAttempt(
        attempt_id=int(row.id),
        assessment_id=int(row.assessment_id),
        student_id=int(row.student_id),
        attempt_number=int(row.attempt_number),
        answers=dict(row.answers or {}),
        score=float(row.score),
        total_points=float(row.total_points),
        percentage=float(row.percentage),
        passed=bool(row.passed),
        submitted_at=row.submitted_at,
        time_spent_seconds=row.time_spent_seconds,
        manual_score=row.manual_score,
        feedback=row.feedback,
        graded_at=row.graded_at,
    )


class SQLAlchemyAssessmentRepository(AssessmentRepository):
    def create(self, *, course_id, title, description, time_limit_minutes, max_attempts, passing_score, questions) -> int:
        with session_scope() as session:
            row = orm.Assessment(
                course_id=int(course_id),
                title=title,
                description=description,
                time_limit_minutes=time_limit_minutes,
                max_attempts=int(max_attempts),
                passing_score=float(passing_score),
            )
            for position, q in enumerate(questions, start=1):
                row.questions.append(
                    orm.Question(
                        question_type=QuestionType(q["type"]).value,
                        text=q["text"],
                        points=float(q.get("points", 1)),
                        options=list(q["options"]) if q.get("options") else None,
                        correct_answer=q.get("correct_answer"),
                        position=position,
                    )
                )
            session.add(row)
            session.flush()
            return int(row.id)

    def get_by_id(self, assessment_id: int) -> Optional[Assessment]:
        row = db.session.get(orm.Assessment, int(assessment_id))
        return _to_assessment(row) if row else None

    def set_published(self, assessment_id: int, is_published: bool) -> bool:
        with session_scope() as session:
            row = session.get(orm.Assessment, int(assessment_id))
            if not row:
                return False
            row.is_published = bool(is_published)
            return True

    def list_for_course(self, course_id, *, published_only=False) -> Sequence[Assessment]:
        q = orm.Assessment.query.filter_by(course_id=int(course_id))
        if published_only:
            q = q.filter(orm.Assessment.is_published.is_(True))
        return [_to_assessment(r) for r in q.order_by(orm.Assessment.created_at).all()]

    def count_attempts(self, assessment_id: int, student_id: int) -> int:
        return int(orm.AssessmentAttempt.query.filter_by(assessment_id=int(assessment_id), student_id=int(student_id)).count())

    def create_attempt(
        self,
        *,
        assessment_id,
        student_id,
        attempt_number,
        answers,
        score,
        total_points,
        percentage,
        passed,
        time_spent_seconds,
        submitted_at,
    ) -> int:
        with session_scope() as session:
            row = orm.AssessmentAttempt(
                assessment_id=int(assessment_id),
                student_id=int(student_id),
                attempt_number=int(attempt_number),
                answers=answers,
                score=float(score),
                total_points=float(total_points),
                percentage=float(percentage),
                passed=bool(passed),
                time_spent_seconds=time_spent_seconds,
                submitted_at=submitted_at,
            )
            session.add(row)
            session.flush()
            return int(row.id)

    def get_attempt(self, attempt_id: int) -> Optional[AssessmentAttempt]:
        row = db.session.get(orm.AssessmentAttempt, int(attempt_id))
        return _to_attempt(row) if row else None

    def update_attempt_grade(self, attempt_id, *, manual_score, percentage, passed, feedback, graded_at) -> bool:
        with session_scope() as session:
            row = session.get(orm.AssessmentAttempt, int(attempt_id))
            if not row:
                return False
            row.manual_score = float(manual_score)
            row.percentage = float(percentage)
            row.passed = bool(passed)
            row.feedback = feedback
            row.graded_at = graded_at
            return True

    def list_attempts(self, assessment_id, *, student_id=None) -> Sequence[AssessmentAttempt]:
        q = orm.AssessmentAttempt.query.filter_by(assessment_id=int(assessment_id))
        if student_id is not None:
            q = q.filter(orm.AssessmentAttempt.student_id == int(student_id))
        return [_to_attempt(r) for r in q.order_by(orm.AssessmentAttempt.submitted_at, orm.AssessmentAttempt.id).all()]
