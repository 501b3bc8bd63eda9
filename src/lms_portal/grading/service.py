from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from ..assignments.model import Assignment
from ..assignments.repository import AssignmentRepository
from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.constants import LONG_FEEDBACK_CHARS, SIGNIFICANT_GRADE_CHANGE_PERCENT
from ..core.enums import NotificationCategory, NotificationPriority, Role, SubmissionStatus
from ..core.exceptions import AuthorizationError, DomainError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository
from ..enrollments.repository import EnrollmentRepository
from ..notifications.service import NotificationService
from ..submissions.model import GradingHistoryEntry, Submission
from ..submissions.repository import SubmissionRepository
from .calculator.base import LatePenaltyCalculator
from .calculator.per_day_calculator import PerDayPercentagePenalty
from .export import build_gradebook_frame, gradebook_to_xlsx
from .model import GradeValidation, Rubric
from .repository import RubricRepository
from .rubric import score_rubric

logger = logging.getLogger(__name__)

DISTRIBUTION_BUCKETS = ((90, "90-100%"), (80, "80-90%"), (70, "70-80%"), (60, "60-70%"))
BELOW_PASSING = "Below 60%"
_GRADED_STATUSES = (SubmissionStatus.GRADED, SubmissionStatus.RETURNED)


def grade_distribution(percentages: Sequence[float]) -> Dict[str, int]:
    dist = {BELOW_PASSING: 0, "60-70%": 0, "70-80%": 0, "80-90%": 0, "90-100%": 0}
    for p in percentages:
        label = next((name for low, name in DISTRIBUTION_BUCKETS if p >= low), BELOW_PASSING)
        dist[label] += 1
    return dist


class GradingService:
    def __init__(
        self,
        submissions: SubmissionRepository,
        assignments: AssignmentRepository,
        courses: CourseRepository,
        enrollments: EnrollmentRepository,
        rubrics: RubricRepository,
        notifier: NotificationService,
        *,
        calculator: Optional[LatePenaltyCalculator] = None,
    ):
        self._submissions = submissions
        self._assignments = assignments
        self._courses = courses
        self._enrollments = enrollments
        self._rubrics = rubrics
        self._notifier = notifier
        self._calculator = calculator or PerDayPercentagePenalty()

    def _can_grade(self, *, current_role: Role, current_user_id: int, assignment: Assignment) -> bool:
        if current_role == Role.ADMIN:
            return True
        if current_role != Role.INSTRUCTOR:
            return False
        if assignment.instructor_id == int(current_user_id):
            return True
        course = self._courses.get_by_id(assignment.course_id)
        return bool(course and course.instructor_id == int(current_user_id))

    def _load(self, submission_id: int) -> tuple[Submission, Assignment]:
        submission = self._submissions.get_by_id(int(submission_id))
        if not submission:
            raise NotFoundError("Submission not found")
        assignment = self._assignments.get_by_id(submission.assignment_id)
        if not assignment:
            raise NotFoundError("Assignment not found")
        return submission, assignment

    def _owned_assignment(self, *, current_role: Role, current_user_id: int, assignment_id: int) -> Assignment:
        assignment = self._assignments.get_by_id(int(assignment_id))
        if not assignment:
            raise NotFoundError("Assignment not found")
        if not self._can_grade(current_role=current_role, current_user_id=current_user_id, assignment=assignment):
            raise AuthorizationError("You cannot grade this assignment")
        return assignment

    def validate_grade(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        submission_id: int,
        grade: float,
        feedback: Optional[str] = None,
    ) -> GradeValidation:
        result = GradeValidation()
        submission = self._submissions.get_by_id(int(submission_id))
        if not submission:
            result.valid = False
            result.errors.append("Submission not found")
            return result

        assignment = self._assignments.get_by_id(submission.assignment_id)
        if not assignment:
            result.valid = False
            result.errors.append("Assignment not found")
            return result

        if not self._can_grade(current_role=current_role, current_user_id=current_user_id, assignment=assignment):
            result.valid = False
            result.errors.append("You do not have permission to grade this submission")
            return result

        if submission.status == SubmissionStatus.DRAFT:
            result.valid = False
            result.errors.append("Draft submissions cannot be graded")

        if grade is None or grade < 0 or grade > assignment.total_points:
            result.valid = False
            result.errors.append(f"Grade must be between 0 and {assignment.total_points}")
            return result

        penalty = self._calculator.apply(
            score=grade, late_penalty=assignment.late_penalty, days_late=submission.days_late, is_late=submission.is_late
        )
        result.penalty = penalty
        if penalty.applied:
            result.warnings.append(
                f"Late penalty of {assignment.late_penalty:g}% per day applied "
                f"({submission.days_late} day(s) late): final score {penalty.final_score:g}"
            )

        previous = submission.final_score if submission.final_score is not None else submission.grade
        if previous is not None:
            change = abs(penalty.final_score - float(previous))
            if change > assignment.total_points * SIGNIFICANT_GRADE_CHANGE_PERCENT / 100:
                result.warnings.append(f"Significant grade change: {float(previous):g} -> {penalty.final_score:g}")

        if feedback and len(feedback) > LONG_FEEDBACK_CHARS:
            result.warnings.append(f"Feedback is very long ({len(feedback)} characters)")

        return result

    def grade_submission(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        submission_id: int,
        grade: Optional[float] = None,
        feedback: Optional[str] = None,
        return_to_student: bool = False,
        reason: Optional[str] = None,
        rubric_selections: Optional[Mapping[int, int]] = None,
        now: Optional[datetime] = None,
    ) -> Submission:
        submission, assignment = self._load(submission_id)

        if rubric_selections:
            rubric = self._rubrics.get_for_assignment(assignment.assignment_id)
            if not rubric:
                raise ValidationError("Assignment has no rubric")
            grade = score_rubric(rubric, rubric_selections, total_points=assignment.total_points)
        if grade is None:
            raise ValidationError("Grade is required", {"grade": ["This field is required"]})

        check = self.validate_grade(
            current_role=current_role,
            current_user_id=current_user_id,
            submission_id=submission.submission_id,
            grade=grade,
            feedback=feedback,
        )
        if not check.valid:
            if any("permission" in e for e in check.errors):
                raise AuthorizationError(check.errors[0])
            raise ValidationError("; ".join(check.errors))

        now = now or now_local()
        penalty = check.penalty
        status = SubmissionStatus.RETURNED if return_to_student else SubmissionStatus.GRADED
        first_grading = not self._submissions.list_history(submission.submission_id)

        self._submissions.record_grade(
            submission.submission_id,
            grade=float(grade),
            original_score=penalty.original_score,
            final_score=penalty.final_score,
            feedback=feedback,
            status=status,
            graded_by=int(current_user_id),
            graded_at=now,
        )
        self._submissions.add_history(
            submission_id=submission.submission_id,
            previous_grade=submission.grade,
            new_grade=float(grade),
            previous_feedback=submission.feedback,
            new_feedback=feedback,
            graded_by=int(current_user_id),
            graded_at=now,
            reason=reason or ("Initial grading" if first_grading else "Grade updated"),
        )
        if first_grading:
            self._assignments.increment_graded_count(assignment.assignment_id)

        message = f"Your submission for \"{assignment.title}\" was graded: {penalty.final_score:g}/{assignment.total_points}"
        if penalty.applied:
            message += f" (late penalty -{penalty.penalty_amount:g})"
        self._notifier.send(
            user_id=submission.student_id,
            title=f"Assignment Graded: {assignment.title}",
            message=message,
            category=NotificationCategory.COURSE,
            priority=NotificationPriority.MEDIUM,
            action_url=f"/assignments/{assignment.assignment_id}",
        )
        logger.info("submission %s graded %s -> %s by %s", submission.submission_id, grade, penalty.final_score, current_user_id)
        return self._submissions.get_by_id(submission.submission_id)

    def bulk_grade(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        submission_ids: Sequence[int],
        grade: float,
        feedback: Optional[str] = None,
        return_to_student: bool = False,
        now: Optional[datetime] = None,
    ) -> dict:
        successful: List[int] = []
        failed: List[dict] = []
        for sid in submission_ids:
            try:
                self.grade_submission(
                    current_role=current_role,
                    current_user_id=current_user_id,
                    submission_id=int(sid),
                    grade=grade,
                    feedback=feedback,
                    return_to_student=return_to_student,
                    reason="Bulk grading",
                    now=now,
                )
                successful.append(int(sid))
            except DomainError as exc:
                failed.append({"submission_id": int(sid), "error": str(exc)})
        return {"successful": successful, "failed": failed}

    def grading_history(self, *, current_role: Role, current_user_id: int, submission_id: int) -> Sequence[GradingHistoryEntry]:
        submission, assignment = self._load(submission_id)
        if current_role == Role.STUDENT:
            if submission.student_id != int(current_user_id):
                raise AuthorizationError("Not your submission")
        elif not self._can_grade(current_role=current_role, current_user_id=current_user_id, assignment=assignment):
            raise AuthorizationError("You cannot view this grading history")
        return self._submissions.list_history(submission.submission_id)

    def assignment_statistics(self, *, current_role: Role, current_user_id: int, assignment_id: int) -> dict:
        assignment = self._owned_assignment(current_role=current_role, current_user_id=current_user_id, assignment_id=assignment_id)
        submissions = [s for s in self._submissions.list_for_assignment(assignment.assignment_id) if s.is_final]
        graded = [s for s in submissions if s.status in _GRADED_STATUSES and s.final_score is not None]
        scores = [float(s.final_score) for s in graded]
        percentages = [score / assignment.total_points * 100 for score in scores]

        return {
            "assignment_id": assignment.assignment_id,
            "total_points": assignment.total_points,
            "total_submissions": len(submissions),
            "graded": len(graded),
            "pending": len(submissions) - len(graded),
            "late_submissions": sum(1 for s in submissions if s.is_late),
            "average": round(sum(scores) / len(scores), 2) if scores else 0.0,
            "average_percentage": round(sum(percentages) / len(percentages), 2) if percentages else 0.0,
            "highest": max(scores) if scores else 0.0,
            "lowest": min(scores) if scores else 0.0,
            "distribution": grade_distribution(percentages),
        }

    # Rubrics
    def save_rubric(
        self, *, current_role: Role, current_user_id: int, assignment_id: int, title: str, criteria: Sequence[dict]
    ) -> Rubric:
        assignment = self._owned_assignment(current_role=current_role, current_user_id=current_user_id, assignment_id=assignment_id)
        title = require_non_empty(title, "title")
        if not criteria:
            raise ValidationError("A rubric needs at least one criterion")
        for item in criteria:
            require_non_empty(item.get("name", ""), "criterion name")
            if not item.get("levels"):
                raise ValidationError(f"Criterion '{item['name']}' needs at least one level")
            if float(item.get("weight", 1.0)) <= 0:
                raise ValidationError(f"Criterion '{item['name']}' weight must be positive")
        self._rubrics.save(assignment_id=assignment.assignment_id, title=title, criteria=criteria)
        return self._rubrics.get_for_assignment(assignment.assignment_id)

    def get_rubric(self, assignment_id: int) -> Rubric:
        rubric = self._rubrics.get_for_assignment(int(assignment_id))
        if not rubric:
            raise NotFoundError("Rubric not found")
        return rubric

    def export_gradebook(self, *, current_role: Role, current_user_id: int, course_id: int) -> bytes:
        course = self._courses.get_by_id(int(course_id))
        if not course:
            raise NotFoundError("Course not found")
        if current_role != Role.ADMIN and course.instructor_id != int(current_user_id):
            raise AuthorizationError("You do not own this course")

        assignments = list(self._assignments.list_for_course(course.course_id, published_only=True))
        submissions: List[Submission] = []
        for a in assignments:
            submissions.extend(self._submissions.list_for_assignment(a.assignment_id))
        enrollments = self._enrollments.list_for_course(course.course_id)
        df = build_gradebook_frame(enrollments, assignments, submissions)
        return gradebook_to_xlsx(df, sheet_name=course.slug)
