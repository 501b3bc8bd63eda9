from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty, require_range
from ..core.constants import MAX_GRADE_POINTS
from ..core.enums import EnrollmentStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..courses.model import Course
from ..courses.repository import CourseRepository
from ..enrollments.repository import EnrollmentRepository
from ..notifications.service import NotificationService
from ..reminders.service import ReminderService
from ..submissions.repository import SubmissionRepository
from .model import Assignment, AssignmentExtension
from .repository import AssignmentRepository

logger = logging.getLogger(__name__)


def effective_due_date(assignment: Assignment, extension: Optional[AssignmentExtension]) -> datetime:
    if extension and extension.new_due_date > assignment.due_date:
        return extension.new_due_date
    return assignment.due_date


class AssignmentService:
    def __init__(
        self,
        assignments: AssignmentRepository,
        courses: CourseRepository,
        enrollments: EnrollmentRepository,
        submissions: SubmissionRepository,
        reminders: ReminderService,
        notifier: NotificationService,
    ):
        self._assignments = assignments
        self._courses = courses
        self._enrollments = enrollments
        self._submissions = submissions
        self._reminders = reminders
        self._notifier = notifier

    def _owned_course(self, *, current_role: Role, current_user_id: int, course_id: int) -> Course:
        course = self._courses.get_by_id(int(course_id))
        if not course:
            raise NotFoundError("Course not found")
        if current_role == Role.ADMIN:
            return course
        if current_role != Role.INSTRUCTOR or course.instructor_id != int(current_user_id):
            raise AuthorizationError("You do not own this course")
        return course

    def get_assignment(self, assignment_id: int) -> Assignment:
        assignment = self._assignments.get_by_id(int(assignment_id))
        if not assignment:
            raise NotFoundError("Assignment not found")
        return assignment

    def get_owned(self, *, current_role: Role, current_user_id: int, assignment_id: int) -> Assignment:
        assignment = self.get_assignment(assignment_id)
        self._owned_course(current_role=current_role, current_user_id=current_user_id, course_id=assignment.course_id)
        return assignment

    @staticmethod
    def _check_late_policy(allow_late_submission: bool, late_penalty: Optional[float]) -> None:
        if allow_late_submission and late_penalty is None:
            raise ValidationError(
                "Late penalty is required when late submissions are allowed",
                {"late_penalty": ["Required when late submissions are allowed"]},
            )
        if late_penalty is not None:
            require_range(float(late_penalty), "late_penalty", 0, 100)

    def create_assignment(
        self,
        *,
        current_role: Role,
        instructor_id: int,
        course_id: int,
        title: str,
        due_date: datetime,
        description: str = "",
        instructions: Optional[str] = None,
        total_points: int = 100,
        allow_late_submission: bool = False,
        late_penalty: Optional[float] = None,
        max_files: int = 1,
        now: Optional[datetime] = None,
    ) -> Assignment:
        course = self._owned_course(current_role=current_role, current_user_id=instructor_id, course_id=course_id)
        title = require_non_empty(title, "title")
        require_range(int(total_points), "total_points", 1, MAX_GRADE_POINTS)
        require_range(int(max_files), "max_files", 1, 10)
        self._check_late_policy(allow_late_submission, late_penalty)

        if due_date <= (now or now_local()):
            raise ValidationError("Due date must be in the future", {"due_date": ["Must be in the future"]})

        assignment_id = self._assignments.create(
            course_id=course.course_id,
            instructor_id=int(instructor_id),
            title=title,
            description=(description or "").strip(),
            instructions=instructions,
            due_date=due_date,
            total_points=int(total_points),
            allow_late_submission=bool(allow_late_submission),
            late_penalty=float(late_penalty) if late_penalty is not None else None,
            max_files=int(max_files),
        )
        logger.info("assignment %s created for course %s", assignment_id, course.course_id)
        return self.get_assignment(assignment_id)

    def update_assignment(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        assignment_id: int,
        now: Optional[datetime] = None,
        **changes,
    ) -> Assignment:
        assignment = self.get_owned(current_role=current_role, current_user_id=current_user_id, assignment_id=assignment_id)
        changes = {k: v for k, v in changes.items() if v is not None}

        if "title" in changes:
            changes["title"] = require_non_empty(changes["title"], "title")
        if "total_points" in changes:
            require_range(int(changes["total_points"]), "total_points", 1, MAX_GRADE_POINTS)
        if "max_files" in changes:
            require_range(int(changes["max_files"]), "max_files", 1, 10)

        if self._submissions.count_for_assignment(assignment.assignment_id) > 0:
            if "total_points" in changes and int(changes["total_points"]) != assignment.total_points:
                raise ValidationError("Total points cannot change after students have submitted")
            if "max_files" in changes and int(changes["max_files"]) != assignment.max_files:
                raise ValidationError("File requirements cannot change after students have submitted")
            if "due_date" in changes and changes["due_date"] < assignment.due_date:
                raise ValidationError("Due date cannot be moved earlier after students have submitted")

        self._check_late_policy(
            changes.get("allow_late_submission", assignment.allow_late_submission),
            changes.get("late_penalty", assignment.late_penalty),
        )

        self._assignments.update(assignment.assignment_id, **changes)
        updated = self.get_assignment(assignment.assignment_id)
        if updated.is_published and updated.due_date != assignment.due_date:
            self._reminders.reschedule_reminders(updated.assignment_id, now=now)
        return updated

    def publish_assignment(
        self, *, current_role: Role, current_user_id: int, assignment_id: int, now: Optional[datetime] = None
    ) -> Assignment:
        assignment = self.get_owned(current_role=current_role, current_user_id=current_user_id, assignment_id=assignment_id)
        if assignment.is_published:
            raise ValidationError("Assignment is already published")

        self._assignments.set_published(assignment.assignment_id, True)
        self._reminders.schedule_reminders(assignment.assignment_id, now=now)
        self._notifier.notify_course(
            course_id=assignment.course_id,
            title=f"New assignment: {assignment.title}",
            message=f"\"{assignment.title}\" is due on {assignment.due_date.strftime('%Y-%m-%d %H:%M')}.",
        )
        return self.get_assignment(assignment.assignment_id)

    def delete_assignment(self, *, current_role: Role, current_user_id: int, assignment_id: int) -> None:
        assignment = self.get_owned(current_role=current_role, current_user_id=current_user_id, assignment_id=assignment_id)
        if self._submissions.count_for_assignment(assignment.assignment_id) > 0:
            raise ValidationError("Cannot delete an assignment that has submissions")
        self._reminders.cancel_reminders(assignment.assignment_id)
        self._assignments.delete(assignment.assignment_id)

    def grant_extension(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        assignment_id: int,
        student_id: int,
        new_due_date: datetime,
        reason: Optional[str] = None,
    ) -> AssignmentExtension:
        assignment = self.get_owned(current_role=current_role, current_user_id=current_user_id, assignment_id=assignment_id)
        if new_due_date <= assignment.due_date:
            raise ValidationError("Extension must be later than the original due date")
        if not self._enrollments.get_for_user_and_course(int(student_id), assignment.course_id):
            raise ValidationError("Student is not enrolled in this course")

        self._assignments.save_extension(
            assignment_id=assignment.assignment_id,
            student_id=int(student_id),
            new_due_date=new_due_date,
            reason=(reason or "").strip() or None,
            granted_by=int(current_user_id),
        )
        return self._assignments.get_extension(assignment.assignment_id, int(student_id))

    def list_for_course(self, *, current_role: Role, current_user_id: int, course_id: int) -> List[Assignment]:
        course = self._owned_course(current_role=current_role, current_user_id=current_user_id, course_id=course_id)
        return list(self._assignments.list_for_course(course.course_id))

    def list_for_student(self, *, student_id: int, course_id: int, now: Optional[datetime] = None) -> List[dict]:
        enrollment = self._enrollments.get_for_user_and_course(int(student_id), int(course_id))
        if not enrollment or enrollment.status not in (EnrollmentStatus.ACTIVE, EnrollmentStatus.COMPLETED):
            raise AuthorizationError("You are not enrolled in this course")

        now = now or now_local()
        rows: List[dict] = []
        for assignment in self._assignments.list_for_course(int(course_id), published_only=True):
            extension = self._assignments.get_extension(assignment.assignment_id, int(student_id))
            submission = self._submissions.get_for_student(assignment.assignment_id, int(student_id))
            due = effective_due_date(assignment, extension)
            row = assignment.to_dict()
            row.update(
                {
                    "effective_due_date": due.isoformat(),
                    "has_extension": extension is not None,
                    "is_overdue": now > due and not (submission and submission.is_final),
                    "submission": submission.to_dict() if submission else None,
                }
            )
            rows.append(row)
        return rows
