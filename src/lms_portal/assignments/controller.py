from __future__ import annotations

from flask import Flask, request

from ..core.enums import AuditAction, ResourceType, Role
from ..web.auth import current_role, role_required
from ..web.http import current_user_id, ok, parse_body, record_audit
from .schemas import CreateAssignmentRequest, ExtensionRequest, UpdateAssignmentRequest


def register(app: Flask, container) -> None:
    assignments = container.assignment_service

    @app.route("/api/instructor/courses/<int:course_id>/assignments", endpoint="instructor_course_assignments")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_course_assignments(course_id: int):
        rows = assignments.list_for_course(current_role=current_role(), current_user_id=current_user_id(), course_id=course_id)
        return ok([a.to_dict() for a in rows])

    @app.route("/api/instructor/courses/<int:course_id>/assignments", methods=["POST"], endpoint="instructor_create_assignment")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_create_assignment(course_id: int):
        body = parse_body(CreateAssignmentRequest)
        assignment = assignments.create_assignment(
            current_role=current_role(), instructor_id=current_user_id(), course_id=course_id, **body.model_dump()
        )
        record_audit(container, AuditAction.ASSIGNMENT_CREATE, ResourceType.ASSIGNMENT, assignment.assignment_id)
        return ok(assignment.to_dict(), status=201)

    @app.route("/api/instructor/assignments/<int:assignment_id>", methods=["PATCH"], endpoint="instructor_update_assignment")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_update_assignment(assignment_id: int):
        body = parse_body(UpdateAssignmentRequest)
        before = assignments.get_owned(
            current_role=current_role(), current_user_id=current_user_id(), assignment_id=assignment_id
        ).to_dict()
        updated = assignments.update_assignment(
            current_role=current_role(),
            current_user_id=current_user_id(),
            assignment_id=assignment_id,
            **body.model_dump(exclude_none=True),
        )
        container.audit_service.record_state_change(
            user_id=current_user_id(),
            action=AuditAction.ASSIGNMENT_UPDATE,
            resource_type=ResourceType.ASSIGNMENT,
            resource_id=assignment_id,
            before=before,
            after=updated.to_dict(),
            headers=request.headers,
            remote_addr=request.remote_addr,
        )
        return ok(updated.to_dict())

    @app.route("/api/instructor/assignments/<int:assignment_id>/publish", methods=["POST"], endpoint="instructor_publish_assignment")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_publish_assignment(assignment_id: int):
        assignment = assignments.publish_assignment(
            current_role=current_role(), current_user_id=current_user_id(), assignment_id=assignment_id
        )
        return ok(assignment.to_dict())

    @app.route("/api/instructor/assignments/<int:assignment_id>", methods=["DELETE"], endpoint="instructor_delete_assignment")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_delete_assignment(assignment_id: int):
        assignments.delete_assignment(current_role=current_role(), current_user_id=current_user_id(), assignment_id=assignment_id)
        record_audit(container, AuditAction.ASSIGNMENT_DELETE, ResourceType.ASSIGNMENT, assignment_id)
        return ok(message="Assignment deleted")

    @app.route("/api/instructor/assignments/<int:assignment_id>/extensions", methods=["POST"], endpoint="instructor_grant_extension")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_grant_extension(assignment_id: int):
        body = parse_body(ExtensionRequest)
        extension = assignments.grant_extension(
            current_role=current_role(),
            current_user_id=current_user_id(),
            assignment_id=assignment_id,
            student_id=body.student_id,
            new_due_date=body.new_due_date,
            reason=body.reason,
        )
        record_audit(
            container,
            AuditAction.ASSIGNMENT_EXTENSION,
            ResourceType.ASSIGNMENT,
            assignment_id,
            {"student_id": body.student_id, "new_due_date": body.new_due_date.isoformat()},
        )
        return ok(extension.to_dict(), status=201)

    @app.route("/api/student/courses/<int:course_id>/assignments", endpoint="student_course_assignments")
    @role_required(Role.STUDENT)
    def student_course_assignments(course_id: int):
        return ok(assignments.list_for_student(student_id=current_user_id(), course_id=course_id))
