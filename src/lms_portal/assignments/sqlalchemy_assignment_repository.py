from __future__ import annotations

from typing import Optional, Sequence

from ..database import orm
from ..database.session import session_scope
from ..extensions import db
from .model import Assignment, AssignmentExtension
from .repository import AssignmentRepository

_UPDATABLE = {
    "title",
    "description",
    "instructions",
    "due_date",
    "total_points",
    "allow_late_submission",
    "late_penalty",
    "max_files",
}


def _to_assignment(row: orm.Assignment) -> Assignment:
    return Assignment(
        assignment_id=int(row.id),
        course_id=int(row.course_id),
        instructor_id=int(row.instructor_id),
        title=row.title,
        description=row.description or "",
        instructions=row.instructions,
        due_date=row.due_date,
        total_points=int(row.total_points),
        allow_late_submission=bool(row.allow_late_submission),
        late_penalty=float(row.late_penalty) if row.late_penalty is not None else None,
        max_files=int(row.max_files or 1),
        is_published=bool(row.is_published),
        graded_count=int(row.graded_count or 0),
        created_at=row.created_at,
        course_title=row.course.title if row.course else None,
    )


class SQLAlchemyAssignmentRepository(AssignmentRepository):
    def get_by_id(self, assignment_id: int) -> Optional[Assignment]:
        row = db.session.get(orm.Assignment, int(assignment_id))
        return _to_assignment(row) if row else None

    def create(
        self,
        *,
        course_id,
        instructor_id,
        title,
        description,
        instructions,
        due_date,
        total_points,
        allow_late_submission,
        late_penalty,
        max_files,
    ) -> int:
        with session_scope() as session:
            row = orm.Assignment(
                course_id=int(course_id),
                instructor_id=int(instructor_id),
                title=title,
                description=description,
                instructions=instructions,
                due_date=due_date,
                total_points=int(total_points),
                allow_late_submission=bool(allow_late_submission),
                late_penalty=late_penalty,
                max_files=int(max_files),
                is_published=False,
            )
            session.add(row)
            session.flush()
            return int(row.id)

    def update(self, assignment_id: int, **fields) -> bool:
        with session_scope() as session:
            row = session.get(orm.Assignment, int(assignment_id))
            if not row:
                return False
            for key, value in fields.items():
                if key in _UPDATABLE:
                    setattr(row, key, value)
            return True

    def set_published(self, assignment_id: int, is_published: bool) -> bool:
        with session_scope() as session:
            row = session.get(orm.Assignment, int(assignment_id))
            if not row:
                return False
            row.is_published = bool(is_published)
            return True

    def delete(self, assignment_id: int) -> bool:
        with session_scope() as session:
            row = session.get(orm.Assignment, int(assignment_id))
            if not row:
                return False
            orm.AssignmentReminder.query.filter_by(assignment_id=row.id).delete()
            orm.AssignmentExtension.query.filter_by(assignment_id=row.id).delete()
            orm.Rubric.query.filter_by(assignment_id=row.id).delete()
            session.delete(row)
            return True

    def increment_graded_count(self, assignment_id: int) -> None:
        with session_scope() as session:
            row = session.get(orm.Assignment, int(assignment_id))
            if row:
                row.graded_count = int(row.graded_count or 0) + 1

    def list_for_course(self, course_id, *, published_only=False) -> Sequence[Assignment]:
        q = orm.Assignment.query.filter_by(course_id=int(course_id))
        if published_only:
            q = q.filter(orm.Assignment.is_published.is_(True))
        return [_to_assignment(r) for r in q.order_by(orm.Assignment.due_date).all()]

    def list_for_instructor(self, instructor_id: int) -> Sequence[Assignment]:
        rows = orm.Assignment.query.filter_by(instructor_id=int(instructor_id)).order_by(orm.Assignment.due_date).all()
        return [_to_assignment(r) for r in rows]

    def list_due_between(self, course_ids, start, end) -> Sequence[Assignment]:
        if not course_ids:
            return []
        rows = (
            orm.Assignment.query.filter(
                orm.Assignment.course_id.in_([int(c) for c in course_ids]),
                orm.Assignment.is_published.is_(True),
                orm.Assignment.due_date >= start,
                orm.Assignment.due_date <= end,
            )
            .order_by(orm.Assignment.due_date)
            .all()
        )
        return [_to_assignment(r) for r in rows]

    def get_extension(self, assignment_id: int, student_id: int) -> Optional[AssignmentExtension]:
        row = orm.AssignmentExtension.query.filter_by(assignment_id=int(assignment_id), student_id=int(student_id)).first()
        if not row:
            return None
        return AssignmentExtension(
            extension_id=int(row.id),
            assignment_id=int(row.assignment_id),
            student_id=int(row.student_id),
            new_due_date=row.new_due_date,
            reason=row.reason,
            granted_by=row.granted_by,
        )

    def save_extension(self, *, assignment_id, student_id, new_due_date, reason, granted_by) -> int:
        with session_scope() as session:
            row = orm.AssignmentExtension.query.filter_by(assignment_id=int(assignment_id), student_id=int(student_id)).first()
            if not row:
                row = orm.AssignmentExtension(assignment_id=int(assignment_id), student_id=int(student_id))
                session.add(row)
            row.new_due_date = new_due_date
            row.reason = reason
            row.granted_by = int(granted_by)
            session.flush()
            return int(row.id)
