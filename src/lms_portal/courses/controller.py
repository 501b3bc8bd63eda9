from __future__ import annotations

from flask import Flask, request

from ..core.enums import AuditAction, CourseStatus, ResourceType, Role
from ..payments.installments import PLANS
from ..web.auth import current_role, role_required
from ..web.http import current_user_id, enum_arg, ok, parse_body, record_audit
from .schemas import CreateCourseRequest, LessonRequest, RejectCourseRequest, UpdateCourseRequest


def register(app: Flask, container) -> None:
    courses = container.course_service

    @app.route("/api/courses", endpoint="course_catalog")
    def course_catalog():
        category = (request.args.get("category") or "").strip() or None
        return ok([c.to_dict() for c in courses.list_catalog(category=category)])

    @app.route("/api/courses/<int:course_id>", endpoint="course_detail")
    def course_detail(course_id: int):
        course = courses.get_course(course_id)
        data = course.to_dict()
        data["lessons"] = [l.to_dict() for l in courses.list_lessons(course.course_id)]
        data["installment_plan_detail"] = PLANS[course.installment_plan].to_dict() if course.installment_plan in PLANS else None
        return ok(data)

    # Instructor
    @app.route("/api/instructor/courses", endpoint="instructor_courses")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_courses():
        return ok([c.to_dict() for c in courses.list_instructor_courses(instructor_id=current_user_id())])

    @app.route("/api/instructor/courses", methods=["POST"], endpoint="instructor_create_course")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_create_course():
        body = parse_body(CreateCourseRequest)
        course = courses.create_course(current_role=current_role(), instructor_id=current_user_id(), **body.model_dump())
        record_audit(container, AuditAction.COURSE_CREATE, ResourceType.COURSE, course.course_id, {"slug": course.slug})
        return ok(course.to_dict(), status=201)

    @app.route("/api/instructor/courses/<int:course_id>", methods=["PATCH"], endpoint="instructor_update_course")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_update_course(course_id: int):
        body = parse_body(UpdateCourseRequest)
        before = courses.get_course(course_id).to_dict()
        course = courses.update_course(
            current_role=current_role(),
            current_user_id=current_user_id(),
            course_id=course_id,
            **body.model_dump(exclude_none=True),
        )
        container.audit_service.record_state_change(
            user_id=current_user_id(),
            action=AuditAction.COURSE_UPDATE,
            resource_type=ResourceType.COURSE,
            resource_id=course_id,
            before=before,
            after=course.to_dict(),
            headers=request.headers,
            remote_addr=request.remote_addr,
        )
        return ok(course.to_dict())

    @app.route("/api/instructor/courses/<int:course_id>/submit", methods=["POST"], endpoint="instructor_submit_course")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_submit_course(course_id: int):
        course = courses.submit_for_approval(current_role=current_role(), current_user_id=current_user_id(), course_id=course_id)
        return ok(course.to_dict())

    @app.route("/api/instructor/courses/<int:course_id>/archive", methods=["POST"], endpoint="instructor_archive_course")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_archive_course(course_id: int):
        course = courses.archive_course(current_role=current_role(), current_user_id=current_user_id(), course_id=course_id)
        record_audit(container, AuditAction.COURSE_UPDATE, ResourceType.COURSE, course_id, {"status": course.status.value})
        return ok(course.to_dict())

    @app.route("/api/instructor/courses/<int:course_id>", methods=["DELETE"], endpoint="instructor_delete_course")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_delete_course(course_id: int):
        courses.delete_course(current_role=current_role(), current_user_id=current_user_id(), course_id=course_id)
        record_audit(container, AuditAction.COURSE_DELETE, ResourceType.COURSE, course_id)
        return ok(message="Course deleted")

    @app.route("/api/instructor/courses/<int:course_id>/lessons", methods=["POST"], endpoint="instructor_add_lesson")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_add_lesson(course_id: int):
        body = parse_body(LessonRequest)
        lesson = courses.add_lesson(
            current_role=current_role(), current_user_id=current_user_id(), course_id=course_id, **body.model_dump()
        )
        return ok(lesson.to_dict(), status=201)

    # Admin approval
    @app.route("/api/admin/courses", endpoint="admin_courses")
    @role_required(Role.ADMIN)
    def admin_courses():
        return ok([c.to_dict() for c in courses.list_all(current_role=current_role(), status=enum_arg("status", CourseStatus))])

    @app.route("/api/admin/courses/<int:course_id>/approve", methods=["POST"], endpoint="admin_approve_course")
    @role_required(Role.ADMIN)
    def admin_approve_course(course_id: int):
        course = courses.approve_course(current_role=current_role(), course_id=course_id)
        record_audit(container, AuditAction.COURSE_APPROVE, ResourceType.COURSE, course_id)
        container.notification_service.send(
            user_id=course.instructor_id,
            title="Course approved",
            message=f"\"{course.title}\" is now published.",
        )
        return ok(course.to_dict())

    @app.route("/api/admin/courses/<int:course_id>/reject", methods=["POST"], endpoint="admin_reject_course")
    @role_required(Role.ADMIN)
    def admin_reject_course(course_id: int):
        body = parse_body(RejectCourseRequest)
        course = courses.reject_course(current_role=current_role(), course_id=course_id, reason=body.reason)
        record_audit(container, AuditAction.COURSE_REJECT, ResourceType.COURSE, course_id, {"reason": body.reason})
        container.notification_service.send(
            user_id=course.instructor_id,
            title="Course needs changes",
            message=f"\"{course.title}\" was not approved: {body.reason}",
        )
        return ok(course.to_dict())
