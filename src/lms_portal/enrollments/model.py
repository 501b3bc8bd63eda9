from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import EnrollmentStatus


@dataclass(frozen=True)
class Enrollment:
    enrollment_id: int
    user_id: int
    course_id: int
    status: EnrollmentStatus
    progress: int
    enrolled_at: datetime
    completed_at: Optional[datetime] = None
    course_title: Optional[str] = None
    student_name: Optional[str] = None
    student_email: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.enrollment_id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "course_title": self.course_title,
            "student_name": self.student_name,
            "student_email": self.student_email,
            "status": self.status.value,
            "progress": self.progress,
            "enrolled_at": self.enrolled_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
