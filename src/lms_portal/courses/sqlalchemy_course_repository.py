from __future__ import annotations

from typing import Dict, Optional, Sequence

from sqlalchemy import func

from ..core.enums import CourseStatus
from ..database import orm
from ..database.session import session_scope
from ..extensions import db
from .model import Course, Lesson
from .repository import CourseRepository

_UPDATABLE = {"title", "description", "category", "price", "application_fee", "installment_plan", "slug"}


def _to_course(row: orm.Course) -> Course:
    return Course(
        course_id=int(row.id),
        title=row.title,
        slug=row.slug,
        description=row.description or "",
        category=row.category,
        price=float(row.price or 0),
        application_fee=float(row.application_fee or 0),
        installment_plan=row.installment_plan or "standard",
        status=CourseStatus(row.status),
        instructor_id=int(row.instructor_id),
        created_at=row.created_at,
        published_at=row.published_at,
        rejection_reason=row.rejection_reason,
        instructor_name=row.instructor.full_name if row.instructor else None,
    )


def _to_lesson(row: orm.Lesson) -> Lesson:
    return Lesson(
        lesson_id=int(row.id),
        course_id=int(row.course_id),
        title=row.title,
        position=int(row.position or 0),
        is_published=bool(row.is_published),
        content=row.content,
    )


class SQLAlchemyCourseRepository(CourseRepository):
    def get_by_id(self, course_id: int) -> Optional[Course]:
        row = db.session.get(orm.Course, int(course_id))
        return _to_course(row) if row else None

    def get_by_slug(self, slug: str) -> Optional[Course]:
        row = orm.Course.query.filter_by(slug=slug).first()
        return _to_course(row) if row else None

    def create_course(self, *, instructor_id, title, slug, description, category, price, application_fee, installment_plan) -> int:
        with session_scope(conflict_message="A course with this slug already exists") as session:
            row = orm.Course(
                instructor_id=int(instructor_id),
                title=title,
                slug=slug,
                description=description,
                category=category,
                price=float(price),
                application_fee=float(application_fee),
                installment_plan=installment_plan,
                status=CourseStatus.DRAFT.value,
            )
            session.add(row)
            session.flush()
            return int(row.id)

    def update_course(self, course_id: int, **fields) -> bool:
        with session_scope(conflict_message="A course with this slug already exists") as session:
            row = session.get(orm.Course, int(course_id))
            if not row:
                return False
            for key, value in fields.items():
                if key in _UPDATABLE and value is not None:
                    setattr(row, key, value)
            return True

    def set_status(self, course_id, status, *, published_at=None, rejection_reason=None) -> bool:
        with session_scope() as session:
            row = session.get(orm.Course, int(course_id))
            if not row:
                return False
            row.status = CourseStatus(status).value
            if published_at is not None:
                row.published_at = published_at
            row.rejection_reason = rejection_reason
            return True

    def delete_course(self, course_id: int) -> bool:
        with session_scope() as session:
            row = session.get(orm.Course, int(course_id))
            if not row:
                return False
            session.delete(row)
            return True

    def list_courses(self, *, status=None, category=None, instructor_id=None) -> Sequence[Course]:
        q = orm.Course.query
        if status:
            q = q.filter(orm.Course.status == CourseStatus(status).value)
        if category:
            q = q.filter(orm.Course.category == category)
        if instructor_id is not None:
            q = q.filter(orm.Course.instructor_id == int(instructor_id))
        return [_to_course(r) for r in q.order_by(orm.Course.created_at.desc(), orm.Course.id.desc()).all()]

    def count_enrollments(self, course_id: int) -> int:
        return int(orm.Enrollment.query.filter_by(course_id=int(course_id)).count())

    def count_by_status(self) -> Dict[str, int]:
        rows = db.session.query(orm.Course.status, func.count(orm.Course.id)).group_by(orm.Course.status).all()
        counts = {s.value: 0 for s in CourseStatus}
        counts.update({status: int(n) for status, n in rows})
        return counts

    def add_lesson(self, *, course_id, title, content, position, is_published) -> int:
        with session_scope() as session:
            row = orm.Lesson(
                course_id=int(course_id),
                title=title,
                content=content,
                position=int(position),
                is_published=bool(is_published),
            )
            session.add(row)
            session.flush()
            return int(row.id)

    def list_lessons(self, course_id: int, *, published_only: bool = False) -> Sequence[Lesson]:
        q = orm.Lesson.query.filter_by(course_id=int(course_id))
        if published_only:
            q = q.filter(orm.Lesson.is_published.is_(True))
        return [_to_lesson(r) for r in q.order_by(orm.Lesson.position, orm.Lesson.id).all()]
