from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import EnrollmentStatus
from ..database import orm
from ..database.session import session_scope
from ..extensions import db
from .model import Enrollment
from .repository import EnrollmentRepository


def _to_enrollment(row: orm.Enrollment) -> Enrollment:
    return Enrollment(
        enrollment_id=int(row.id),
        user_id=int(row.user_id),
        course_id=int(row.course_id),
        status=EnrollmentStatus(row.status),
        progress=int(row.progress or 0),
        enrolled_at=row.enrolled_at,
        completed_at=row.completed_at,
        course_title=row.course.title if row.course else None,
        student_name=row.user.full_name if row.user else None,
        student_email=row.user.email if row.user else None,
    )


class SQLAlchemyEnrollmentRepository(EnrollmentRepository):
    def get_by_id(self, enrollment_id: int) -> Optional[Enrollment]:
        row = db.session.get(orm.Enrollment, int(enrollment_id))
        return _to_enrollment(row) if row else None

    def get_for_user_and_course(self, user_id: int, course_id: int) -> Optional[Enrollment]:
        row = orm.Enrollment.query.filter_by(user_id=int(user_id), course_id=int(course_id)).first()
        return _to_enrollment(row) if row else None

    def create(self, *, user_id, course_id, status, enrolled_at) -> int:
        with session_scope(conflict_message="Already enrolled in this course") as session:
            row = orm.Enrollment(
                user_id=int(user_id),
                course_id=int(course_id),
                status=EnrollmentStatus(status).value,
                enrolled_at=enrolled_at,
            )
            session.add(row)
            session.flush()
            return int(row.id)

    def set_status(self, enrollment_id, status, *, completed_at=None) -> bool:
        with session_scope() as session:
            row = session.get(orm.Enrollment, int(enrollment_id))
            if not row:
                return False
            row.status = EnrollmentStatus(status).value
            if completed_at is not None:
                row.completed_at = completed_at
            return True

    def set_progress(self, enrollment_id: int, progress: int) -> bool:
        with session_scope() as session:
            row = session.get(orm.Enrollment, int(enrollment_id))
            if not row:
                return False
            row.progress = int(progress)
            return True

    def list_for_user(self, user_id: int) -> Sequence[Enrollment]:
        rows = orm.Enrollment.query.filter_by(user_id=int(user_id)).order_by(orm.Enrollment.enrolled_at.desc()).all()
        return [_to_enrollment(r) for r in rows]

    def list_for_course(self, course_id, *, status=None) -> Sequence[Enrollment]:
        q = orm.Enrollment.query.filter_by(course_id=int(course_id))
        if status:
            q = q.filter(orm.Enrollment.status == EnrollmentStatus(status).value)
        return [_to_enrollment(r) for r in q.order_by(orm.Enrollment.enrolled_at).all()]

    def add_completion(self, *, enrollment_id, lesson_id, completed_at) -> bool:
        exists = orm.LessonCompletion.query.filter_by(enrollment_id=int(enrollment_id), lesson_id=int(lesson_id)).first()
        if exists:
            return False
        with session_scope(conflict_message="Lesson already completed") as session:
            session.add(
                orm.LessonCompletion(enrollment_id=int(enrollment_id), lesson_id=int(lesson_id), completed_at=completed_at)
            )
        return True

    def count_completed_lessons(self, enrollment_id: int, *, published_only: bool = True) -> int:
        q = orm.LessonCompletion.query.filter(orm.LessonCompletion.enrollment_id == int(enrollment_id))
        if published_only:
            q = q.join(orm.Lesson, orm.Lesson.id == orm.LessonCompletion.lesson_id).filter(orm.Lesson.is_published.is_(True))
        return int(q.count())
