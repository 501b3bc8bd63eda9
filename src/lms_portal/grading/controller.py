from __future__ import annotations

import io

from flask import Flask, send_file

from ..core.enums import AuditAction, ResourceType, Role
from ..web.auth import current_role, role_required
from ..web.http import current_user_id, ok, parse_body, record_audit
from .schemas import BulkGradeRequest, GradeRequest, RubricRequest, ValidateGradeRequest

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def register(app: Flask, container) -> None:
    grading = container.grading_service

    @app.route("/api/instructor/submissions/<int:submission_id>/validate-grade", methods=["POST"], endpoint="instructor_validate_grade")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_validate_grade(submission_id: int):
        body = parse_body(ValidateGradeRequest)
        result = grading.validate_grade(
            current_role=current_role(),
            current_user_id=current_user_id(),
            submission_id=submission_id,
            grade=body.grade,
            feedback=body.feedback,
        )
        return ok(result.to_dict())

    @app.route("/api/instructor/submissions/<int:submission_id>/grade", methods=["POST"], endpoint="instructor_grade_submission")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_grade_submission(submission_id: int):
        body = parse_body(GradeRequest)
        submission = grading.grade_submission(
            current_role=current_role(),
            current_user_id=current_user_id(),
            submission_id=submission_id,
            grade=body.grade,
            feedback=body.feedback,
            return_to_student=body.return_to_student,
            reason=body.reason,
            rubric_selections=body.rubric_selections,
        )
        record_audit(
            container,
            AuditAction.ASSIGNMENT_GRADE,
            ResourceType.SUBMISSION,
            submission_id,
            {"grade": submission.grade, "final_score": submission.final_score},
        )
        return ok(submission.to_dict())

    @app.route("/api/instructor/assignments/<int:assignment_id>/bulk-grade", methods=["POST"], endpoint="instructor_bulk_grade")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_bulk_grade(assignment_id: int):
        body = parse_body(BulkGradeRequest)
        result = grading.bulk_grade(
            current_role=current_role(),
            current_user_id=current_user_id(),
            submission_ids=body.submission_ids,
            grade=body.grade,
            feedback=body.feedback,
            return_to_student=body.return_to_student,
        )
        record_audit(
            container,
            AuditAction.BULK_GRADE,
            ResourceType.ASSIGNMENT,
            assignment_id,
            {"successful": len(result["successful"]), "failed": len(result["failed"])},
        )
        return ok(result)

    @app.route("/api/submissions/<int:submission_id>/history", endpoint="submission_grading_history")
    @role_required(Role.STUDENT, Role.INSTRUCTOR, Role.ADMIN)
    def submission_grading_history(submission_id: int):
        rows = grading.grading_history(current_role=current_role(), current_user_id=current_user_id(), submission_id=submission_id)
        return ok([h.to_dict() for h in rows])

    @app.route("/api/instructor/assignments/<int:assignment_id>/statistics", endpoint="instructor_assignment_statistics")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_assignment_statistics(assignment_id: int):
        return ok(
            grading.assignment_statistics(current_role=current_role(), current_user_id=current_user_id(), assignment_id=assignment_id)
        )

    @app.route("/api/instructor/assignments/<int:assignment_id>/rubric", methods=["PUT"], endpoint="instructor_save_rubric")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_save_rubric(assignment_id: int):
        body = parse_body(RubricRequest)
        rubric = grading.save_rubric(
            current_role=current_role(),
            current_user_id=current_user_id(),
            assignment_id=assignment_id,
            title=body.title,
            criteria=[c.model_dump() for c in body.criteria],
        )
        return ok(rubric.to_dict())

    @app.route("/api/assignments/<int:assignment_id>/rubric", endpoint="assignment_rubric")
    @role_required(Role.STUDENT, Role.INSTRUCTOR, Role.ADMIN)
    def assignment_rubric(assignment_id: int):
        return ok(grading.get_rubric(assignment_id).to_dict())

    @app.route("/api/instructor/courses/<int:course_id>/gradebook.xlsx", endpoint="instructor_export_gradebook")
    @role_required(Role.INSTRUCTOR, Role.ADMIN)
    def instructor_export_gradebook(course_id: int):
        content = grading.export_gradebook(current_role=current_role(), current_user_id=current_user_id(), course_id=course_id)
        record_audit(container, AuditAction.DATA_EXPORT, ResourceType.COURSE, course_id, {"format": "xlsx"})
        return send_file(
            io.BytesIO(content),
            download_name=f"gradebook_course_{course_id}.xlsx",
            as_attachment=True,
            mimetype=XLSX_MIMETYPE,
        )
