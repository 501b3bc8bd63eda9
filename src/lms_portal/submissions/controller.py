from __future__ import annotations

from flask import Flask

from ..core.enums import Role, SubmissionStatus
from ..web.auth import current_role, role_required
from ..web.http import current_user_id, enum_arg, ok, parse_body
from .schemas import SubmitRequest


def register(app: Flask, container) -> None:
    submissions = container.submission_service

    @app.route("/api/student/assignments/<int:assignment_id>/submission", methods=["POST"], endpoint="student_submit")
    @role_required(Role.STUDENT)
    def student_submit(assignment_id: int):
        body = parse_body(SubmitRequest)
        submission = submissions.submit(
            current_role=current_role(),
            student_id=current_user_id(),
            assignment_id=assignment_id,
            text=body.text,
            is_draft=body.is_draft,
        )
        return ok(submission.to_dict(), status=201)

    @app.route("/api/student/submissions", endpoint="student_submissions")
    @role_required(Role.STUDENT)
    def student_submissions():
        return ok([s.to_dict() for s in submissions.list_for_student(student_id=current_user_id())])

    @app.route("/api/submissions/<int:submission_id>", endpoint="submission_detail")
    @role_required(Role.STUDENT, Role.INSTRUCTOR, Role.ADMIN)
    def submission_detail(submission_id: int):
        submission = submissions.get_submission(
            current_role=current_role(), current_user_id=current_user_id(), submission_id=submission_id
        )
        return ok(submission.to_dict())

    @app.route("/api/instructor/assignments/<int:assignment_id>/submissions", endpoint="instructor_assignment_submissions")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_assignment_submissions(assignment_id: int):
        rows = submissions.list_for_assignment(
            current_role=current_role(),
            current_user_id=current_user_id(),
            assignment_id=assignment_id,
            status=enum_arg("status", SubmissionStatus),
        )
        return ok([s.to_dict() for s in rows])
