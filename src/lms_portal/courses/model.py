from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import CourseStatus


@dataclass(frozen=True)
class Course:
    course_id: int
    title: str
    slug: str
    description: str
    category: Optional[str]
    price: float
    application_fee: float
    installment_plan: str
    status: CourseStatus
    instructor_id: int
    created_at: datetime
    published_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    instructor_name: Optional[str] = None

    @property
    def is_free(self) -> bool:
        return self.price <= 0

    def to_dict(self) -> dict:
        return {
            "id": self.course_id,
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "category": self.category,
            "price": self.price,
            "application_fee": self.application_fee,
            "installment_plan": self.installment_plan,
            "status": self.status.value,
            "instructor_id": self.instructor_id,
            "instructor_name": self.instructor_name,
            "rejection_reason": self.rejection_reason,
            "created_at": self.created_at.isoformat(),
            "published_at": self.published_at.isoformat() if self.published_at else None,
        }


@dataclass(frozen=True)
class Lesson:
    lesson_id: int
    course_id: int
    title: str
    position: int
    is_published: bool = True
    content: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.lesson_id,
            "course_id": self.course_id,
            "title": self.title,
            "position": self.position,
            "is_published": self.is_published,
            "content": self.content,
        }
