from __future__ import annotations

from flask import Flask

from ..core.enums import Role
from ..web.auth import current_role, role_required
from ..web.http import current_user_id, ok, parse_body
from .schemas import AttemptRequest, CreateAssessmentRequest, GradeAttemptRequest


def register(app: Flask, container) -> None:
    assessments = container.assessment_service

    @app.route("/api/instructor/courses/<int:course_id>/assessments", methods=["POST"], endpoint="instructor_create_assessment")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_create_assessment(course_id: int):
        body = parse_body(CreateAssessmentRequest)
        data = body.model_dump(mode="json")
        assessment = assessments.create_assessment(
            current_role=current_role(), current_user_id=current_user_id(), course_id=course_id, **data
        )
        return ok(assessment.to_dict(include_answers=True), status=201)

    @app.route("/api/instructor/courses/<int:course_id>/assessments", endpoint="instructor_course_assessments")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_course_assessments(course_id: int):
        rows = assessments.list_for_owner(current_role=current_role(), current_user_id=current_user_id(), course_id=course_id)
        return ok([a.to_dict(include_answers=True) for a in rows])

    @app.route("/api/instructor/assessments/<int:assessment_id>/publish", methods=["POST"], endpoint="instructor_publish_assessment")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_publish_assessment(assessment_id: int):
        assessment = assessments.publish_assessment(
            current_role=current_role(), current_user_id=current_user_id(), assessment_id=assessment_id
        )
        return ok(assessment.to_dict(include_answers=True))

    @app.route("/api/instructor/assessments/<int:assessment_id>/statistics", endpoint="instructor_assessment_statistics")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_assessment_statistics(assessment_id: int):
        return ok(assessments.statistics(current_role=current_role(), current_user_id=current_user_id(), assessment_id=assessment_id))

    @app.route("/api/instructor/attempts/<int:attempt_id>/grade", methods=["POST"], endpoint="instructor_grade_attempt")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_grade_attempt(attempt_id: int):
        body = parse_body(GradeAttemptRequest)
        attempt = assessments.grade_attempt(
            current_role=current_role(),
            current_user_id=current_user_id(),
            attempt_id=attempt_id,
            manual_score=body.manual_score,
            feedback=body.feedback,
        )
        return ok(attempt.to_dict())

    @app.route("/api/assessments/<int:assessment_id>/attempts", endpoint="assessment_attempts")
    @role_required(Role.STUDENT, Role.INSTRUCTOR, Role.ADMIN)
    def assessment_attempts(assessment_id: int):
        rows = assessments.list_attempts(current_role=current_role(), current_user_id=current_user_id(), assessment_id=assessment_id)
        return ok([a.to_dict() for a in rows])

    @app.route("/api/student/courses/<int:course_id>/assessments", endpoint="student_course_assessments")
    @role_required(Role.STUDENT)
    def student_course_assessments(course_id: int):
        return ok([a.to_dict() for a in assessments.list_for_course(course_id=course_id)])

    @app.route("/api/student/assessments/<int:assessment_id>/attempts", methods=["POST"], endpoint="student_submit_attempt")
    @role_required(Role.STUDENT)
    def student_submit_attempt(assessment_id: int):
        body = parse_body(AttemptRequest)
        attempt = assessments.submit_attempt(
            current_role=current_role(),
            student_id=current_user_id(),
            assessment_id=assessment_id,
            answers=body.answers,
            time_spent_seconds=body.time_spent_seconds,
        )
        return ok(attempt.to_dict(), status=201)
