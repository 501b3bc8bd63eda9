from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import SubmissionStatus
from ..database import orm
from ..database.session import session_scope
from ..extensions import db
from .model import GradingHistoryEntry, Submission
from .repository import SubmissionRepository

_GRADED = (SubmissionStatus.GRADED.value, SubmissionStatus.RETURNED.value)


def _to_submission(row: orm.Submission) -> Submission:
    return Submission(
        submission_id=int(row.id),
        assignment_id=int(row.assignment_id),
        student_id=int(row.student_id),
        status=SubmissionStatus(row.status),
        is_late=bool(row.is_late),
        days_late=int(row.days_late or 0),
        resubmission_count=int(row.resubmission_count or 0),
        text=row.text,
        grade=row.grade,
        original_score=row.original_score,
        final_score=row.final_score,
        feedback=row.feedback,
        submitted_at=row.submitted_at,
        graded_at=row.graded_at,
        graded_by=row.graded_by,
        student_name=row.student.full_name if row.student else None,
        student_email=row.student.email if row.student else None,
    )


class SQLAlchemySubmissionRepository(SubmissionRepository):
    def get_by_id(self, submission_id: int) -> Optional[Submission]:
        row = db.session.get(orm.Submission, int(submission_id))
        return _to_submission(row) if row else None

    def get_for_student(self, assignment_id: int, student_id: int) -> Optional[Submission]:
        row = orm.Submission.query.filter_by(assignment_id=int(assignment_id), student_id=int(student_id)).first()
        return _to_submission(row) if row else None

    def save(self, *, assignment_id, student_id, text, status, is_late, days_late, submitted_at, resubmission_count) -> int:
        with session_scope(conflict_message="Submission already exists") as session:
            row = orm.Submission.query.filter_by(assignment_id=int(assignment_id), student_id=int(student_id)).first()
            if not row:
                row = orm.Submission(assignment_id=int(assignment_id), student_id=int(student_id))
                session.add(row)
            row.text = text
            row.status = SubmissionStatus(status).value
            row.is_late = bool(is_late)
            row.days_late = int(days_late)
            if submitted_at is not None:
                row.submitted_at = submitted_at
            row.resubmission_count = int(resubmission_count)
            if row.status == SubmissionStatus.SUBMITTED.value:
                row.grade = row.original_score = row.final_score = None
                row.graded_at = None
                row.graded_by = None
            session.flush()
            return int(row.id)

    def record_grade(self, submission_id, *, grade, original_score, final_score, feedback, status, graded_by, graded_at) -> bool:
        with session_scope() as session:
            row = session.get(orm.Submission, int(submission_id))
            if not row:
                return False
            row.grade = float(grade)
            row.original_score = float(original_score)
            row.final_score = float(final_score)
            row.feedback = feedback
            row.status = SubmissionStatus(status).value
            row.graded_by = int(graded_by)
            row.graded_at = graded_at
            return True

    def list_for_assignment(self, assignment_id, *, status=None) -> Sequence[Submission]:
        q = orm.Submission.query.filter_by(assignment_id=int(assignment_id))
        if status:
            q = q.filter(orm.Submission.status == SubmissionStatus(status).value)
        return [_to_submission(r) for r in q.order_by(orm.Submission.submitted_at, orm.Submission.id).all()]

    def list_for_student(self, student_id: int) -> Sequence[Submission]:
        rows = orm.Submission.query.filter_by(student_id=int(student_id)).order_by(orm.Submission.id).all()
        return [_to_submission(r) for r in rows]

    def count_for_assignment(self, assignment_id: int) -> int:
        return int(
            orm.Submission.query.filter(
                orm.Submission.assignment_id == int(assignment_id),
                orm.Submission.status != SubmissionStatus.DRAFT.value,
            ).count()
        )

    def count_pending_for_instructor(self, instructor_id: int) -> int:
        return int(
            orm.Submission.query.join(orm.Assignment, orm.Assignment.id == orm.Submission.assignment_id)
            .filter(
                orm.Assignment.instructor_id == int(instructor_id),
                orm.Submission.status == SubmissionStatus.SUBMITTED.value,
            )
            .count()
        )

    def graded_scores_for_instructor(self, instructor_id: int) -> Sequence[float]:
        rows = (
            db.session.query(orm.Submission.final_score, orm.Assignment.total_points)
            .join(orm.Assignment, orm.Assignment.id == orm.Submission.assignment_id)
            .filter(orm.Assignment.instructor_id == int(instructor_id), orm.Submission.status.in_(_GRADED))
            .all()
        )
        return [float(score) / float(total) * 100 for score, total in rows if score is not None and total]

    def add_history(self, *, submission_id, previous_grade, new_grade, previous_feedback, new_feedback, graded_by, graded_at, reason) -> int:
        with session_scope() as session:
            row = orm.GradingHistory(
                submission_id=int(submission_id),
                previous_grade=previous_grade,
                new_grade=float(new_grade),
                previous_feedback=previous_feedback,
                new_feedback=new_feedback,
                graded_by=int(graded_by),
                graded_at=graded_at,
                reason=reason,
            )
            session.add(row)
            session.flush()
            return int(row.id)

    def list_history(self, submission_id: int) -> Sequence[GradingHistoryEntry]:
        rows = (
            orm.GradingHistory.query.filter_by(submission_id=int(submission_id))
            .order_by(orm.GradingHistory.graded_at.desc(), orm.GradingHistory.id.desc())
            .all()
        )
        return [
            GradingHistoryEntry(
                history_id=int(r.id),
                submission_id=int(r.submission_id),
                previous_grade=r.previous_grade,
                new_grade=float(r.new_grade),
                previous_feedback=r.previous_feedback,
                new_feedback=r.new_feedback,
                graded_by=int(r.graded_by),
                graded_at=r.graded_at,
                reason=r.reason,
            )
            for r in rows
        ]
