from __future__ import annotations

from flask import Flask

from ..core.enums import AuditAction, ResourceType, Role
from ..web.auth import current_role, role_required
from ..web.http import current_user_id, ok, parse_body, record_audit
from .schemas import EnrollRequest


def register(app: Flask, container) -> None:
    enrollments = container.enrollment_service

    @app.route("/api/student/enrollments", endpoint="student_enrollments")
    @role_required(Role.STUDENT)
    def student_enrollments():
        return ok([e.to_dict() for e in enrollments.list_for_student(student_id=current_user_id())])

    @app.route("/api/student/enrollments", methods=["POST"], endpoint="student_enroll")
    @role_required(Role.STUDENT)
    def student_enroll():
        body = parse_body(EnrollRequest)
        enrollment = enrollments.enroll(current_role=current_role(), student_id=current_user_id(), course_id=body.course_id)
        record_audit(
            container,
            AuditAction.ENROLLMENT_CREATE,
            ResourceType.ENROLLMENT,
            enrollment.enrollment_id,
            {"course_id": body.course_id, "status": enrollment.status.value},
        )
        return ok(enrollment.to_dict(), status=201)

    @app.route(
        "/api/student/enrollments/<int:enrollment_id>/lessons/<int:lesson_id>/complete",
        methods=["POST"],
        endpoint="student_complete_lesson",
    )
    @role_required(Role.STUDENT)
    def student_complete_lesson(enrollment_id: int, lesson_id: int):
        enrollment = enrollments.complete_lesson(student_id=current_user_id(), enrollment_id=enrollment_id, lesson_id=lesson_id)
        return ok(enrollment.to_dict())

    @app.route("/api/student/enrollments/<int:enrollment_id>/drop", methods=["POST"], endpoint="student_drop_enrollment")
    @role_required(Role.STUDENT)
    def student_drop_enrollment(enrollment_id: int):
        return ok(enrollments.drop(student_id=current_user_id(), enrollment_id=enrollment_id).to_dict())

    @app.route("/api/instructor/courses/<int:course_id>/enrollments", endpoint="instructor_course_enrollments")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_course_enrollments(course_id: int):
        rows = enrollments.list_for_course(current_role=current_role(), current_user_id=current_user_id(), course_id=course_id)
        return ok([e.to_dict() for e in rows])
