from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Assignment:
    assignment_id: int
    course_id: int
    instructor_id: int
    title: str
    description: str
    due_date: datetime
    total_points: int
    allow_late_submission: bool
    late_penalty: Optional[float]
    max_files: int
    is_published: bool
    graded_count: int
    created_at: datetime
    instructions: Optional[str] = None
    course_title: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.assignment_id,
            "course_id": self.course_id,
            "course_title": self.course_title,
            "instructor_id": self.instructor_id,
            "title": self.title,
            "description": self.description,
            "instructions": self.instructions,
            "due_date": self.due_date.isoformat(),
            "total_points": self.total_points,
            "allow_late_submission": self.allow_late_submission,
            "late_penalty": self.late_penalty,
            "max_files": self.max_files,
            "is_published": self.is_published,
            "graded_count": self.graded_count,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class AssignmentExtension:
    extension_id: int
    assignment_id: int
    student_id: int
    new_due_date: datetime
    reason: Optional[str] = None
    granted_by: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.extension_id,
            "assignment_id": self.assignment_id,
            "student_id": self.student_id,
            "new_due_date": self.new_due_date.isoformat(),
            "reason": self.reason,
            "granted_by": self.granted_by,
        }
