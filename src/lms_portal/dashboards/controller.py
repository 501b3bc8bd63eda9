from __future__ import annotations

from flask import Flask

from ..core.enums import Role
from ..web.auth import role_required
from ..web.http import current_user_id, ok


def register(app: Flask, container) -> None:
    dashboards = container.dashboard_service

    @app.route("/api/student/dashboard", endpoint="student_dashboard")
    @role_required(Role.STUDENT)
    def student_dashboard():
        return ok(dashboards.student(student_id=current_user_id()))

    @app.route("/api/instructor/dashboard", endpoint="instructor_dashboard")
    @role_required(Role.INSTRUCTOR)
    def instructor_dashboard():
        return ok(dashboards.instructor(instructor_id=current_user_id()))

    @app.route("/api/admin/dashboard", endpoint="admin_dashboard")
    @role_required(Role.ADMIN)
    def admin_dashboard():
        return ok(dashboards.admin())
