from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..assignments.repository import AssignmentRepository
from ..assignments.service import effective_due_date
from ..common.datetime_utils import days_late, now_local
from ..core.enums import EnrollmentStatus, Role, SubmissionStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..enrollments.repository import EnrollmentRepository
from .model import Submission
from .repository import SubmissionRepository

logger = logging.getLogger(__name__)


class SubmissionService:
    def __init__(
        self,
        submissions: SubmissionRepository,
        assignments: AssignmentRepository,
        enrollments: EnrollmentRepository,
    ):
        self._submissions = submissions
        self._assignments = assignments
        self._enrollments = enrollments

    def submit(
        self,
        *,
        current_role: Role,
        student_id: int,
        assignment_id: int,
        text: Optional[str] = None,
        is_draft: bool = False,
        now: Optional[datetime] = None,
    ) -> Submission:
        if current_role != Role.STUDENT:
            raise AuthorizationError("Only students can submit assignments")

        assignment = self._assignments.get_by_id(int(assignment_id))
        if not assignment:
            raise NotFoundError("Assignment not found")
        if not assignment.is_published:
            raise ValidationError("Assignment is not yet published")

        enrollment = self._enrollments.get_for_user_and_course(int(student_id), assignment.course_id)
        if not enrollment or enrollment.status != EnrollmentStatus.ACTIVE:
            raise AuthorizationError("You must be actively enrolled in this course")

        text = (text or "").strip() or None
        if not is_draft and not text:
            raise ValidationError("Submission text is required", {"text": ["This field is required"]})

        now = now or now_local()
        extension = self._assignments.get_extension(assignment.assignment_id, int(student_id))
        due = effective_due_date(assignment, extension)
        overdue = now > due

        if not is_draft and overdue and not assignment.allow_late_submission:
            raise ValidationError("Assignment deadline has passed and late submissions are not allowed")

        existing = self._submissions.get_for_student(assignment.assignment_id, int(student_id))
        if existing and existing.status == SubmissionStatus.GRADED:
            raise ValidationError("Cannot update a graded submission")
        if existing and existing.status == SubmissionStatus.SUBMITTED and not is_draft:
            raise ValidationError("Assignment has already been submitted")
        if existing and existing.status == SubmissionStatus.SUBMITTED and is_draft:
            raise ValidationError("A submitted assignment cannot go back to draft")

        late = not is_draft and overdue
        resubmissions = existing.resubmission_count if existing else 0
        if existing and not is_draft:
            resubmissions += 1

        submission_id = self._submissions.save(
            assignment_id=assignment.assignment_id,
            student_id=int(student_id),
            text=text,
            status=SubmissionStatus.DRAFT if is_draft else SubmissionStatus.SUBMITTED,
            is_late=late,
            days_late=days_late(due, now) if late else 0,
            submitted_at=None if is_draft else now,
            resubmission_count=resubmissions,
        )
        if late:
            logger.info("late submission %s for assignment %s (%s days)", submission_id, assignment.assignment_id, days_late(due, now))
        return self._submissions.get_by_id(submission_id)

    def get_submission(self, *, current_role: Role, current_user_id: int, submission_id: int) -> Submission:
        submission = self._submissions.get_by_id(int(submission_id))
        if not submission:
            raise NotFoundError("Submission not found")
        if current_role == Role.STUDENT and submission.student_id != int(current_user_id):
            raise AuthorizationError("Not your submission")
        if current_role == Role.INSTRUCTOR:
            assignment = self._assignments.get_by_id(submission.assignment_id)
            if not assignment or assignment.instructor_id != int(current_user_id):
                raise AuthorizationError("Not your assignment")
        return submission

    def list_for_student(self, *, student_id: int) -> Sequence[Submission]:
        return self._submissions.list_for_student(int(student_id))

    def list_for_assignment(
        self, *, current_role: Role, current_user_id: int, assignment_id: int, status: Optional[SubmissionStatus] = None
    ) -> Sequence[Submission]:
        assignment = self._assignments.get_by_id(int(assignment_id))
        if not assignment:
            raise NotFoundError("Assignment not found")
        if current_role != Role.ADMIN and assignment.instructor_id != int(current_user_id):
            raise AuthorizationError("Not your assignment")
        return self._submissions.list_for_assignment(assignment.assignment_id, status=status)
