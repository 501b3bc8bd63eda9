from __future__ import annotations

import logging
import smtplib
from datetime import timedelta

from flask import Flask, request
from flask_login import login_required, login_user, logout_user

from ..core.enums import AuditAction, ResourceType, Role
from ..web.auth import current_role, role_required
from ..web.http import current_user_id, enum_arg, ok, pagination, parse_body, parse_query, record_audit
from ..web.rate_limit import rate_limited
from .schemas import (
    CreateInstructorRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateUserRequest,
    UserListQuery,
)

logger = logging.getLogger(__name__)


def register(app: Flask, container) -> None:
    limit = container.rate_limiter

    @app.route("/api/auth/register", methods=["POST"], endpoint="auth_register")
    @rate_limited(limit, "auth")
    def auth_register():
        body = parse_body(RegisterRequest)
        s_user = container.auth_service.register(
            email=body.email, full_name=body.full_name, password=body.password, phone=body.phone
        )
        login_user(s_user)
        record_audit(container, AuditAction.USER_REGISTER, ResourceType.USER, s_user.user_id, user_id=s_user.user_id)
        return ok({"user": s_user.to_dict(), "token": container.auth_service.issue_token(s_user)}, status=201)

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    @rate_limited(limit, "auth")
    def auth_login():
        body = parse_body(LoginRequest)
        s_user = container.auth_service.authenticate(body.email, body.password)

        remember = bool((request.get_json(silent=True) or {}).get("remember_me"))
        app.permanent_session_lifetime = timedelta(seconds=app.config["TOKEN_MAX_AGE_SECONDS"])
        login_user(s_user, remember=remember)

        record_audit(container, AuditAction.USER_LOGIN, ResourceType.USER, s_user.user_id, user_id=s_user.user_id)
        return ok({"user": s_user.to_dict(), "token": container.auth_service.issue_token(s_user)})

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    @login_required
    def auth_logout():
        record_audit(container, AuditAction.USER_LOGOUT, ResourceType.USER, current_user_id())
        logout_user()
        return ok(message="Logged out")

    @app.route("/api/auth/me", endpoint="auth_me")
    @login_required
    def auth_me():
        return ok(container.user_service.get_user(current_user_id()).public())

    @app.route("/api/auth/forgot-password", methods=["POST"], endpoint="auth_forgot_password")
    @rate_limited(limit, "auth")
    def auth_forgot_password():
        body = parse_body(ForgotPasswordRequest)
        token = container.auth_service.request_password_reset(body.email)
        if token:
            link = f"{app.config['APP_URL'].rstrip('/')}/reset-password?token={token}"
            try:
                container.mailer.send(
                    to=body.email.strip().lower(),
                    subject="Reset your password",
                    body=f"Use the link below to reset your password. It expires in one hour.\n\n{link}\n",
                )
            except (smtplib.SMTPException, OSError) as e:
                logger.warning("password reset email to %s failed: %s", body.email, e)
        # Same answer for unknown emails
        return ok(message="If the email exists, a reset link has been sent")

    @app.route("/api/auth/reset-password", methods=["POST"], endpoint="auth_reset_password")
    @rate_limited(limit, "auth")
    def auth_reset_password():
        body = parse_body(ResetPasswordRequest)
        user_id = container.auth_service.reset_password(token=body.token, new_password=body.new_password)
        record_audit(container, AuditAction.PASSWORD_RESET, ResourceType.USER, user_id, user_id=user_id)
        return ok(message="Password has been reset")

    # Admin user management
    @app.route("/api/admin/users", endpoint="admin_users")
    @role_required(Role.ADMIN)
    def admin_users():
        query = parse_query(UserListQuery)
        limit_, offset = pagination()
        users = container.user_service.list_users(
            current_role=current_role(),
            role=query.role,
            status=query.status,
            search=query.search,
            limit=limit_,
            offset=offset,
        )
        return ok([u.public() for u in users])

    @app.route("/api/admin/users", methods=["POST"], endpoint="admin_create_instructor")
    @role_required(Role.ADMIN)
    def admin_create_instructor():
        body = parse_body(CreateInstructorRequest)
        user_id = container.user_service.create_instructor(
            current_role=current_role(),
            email=body.email,
            full_name=body.full_name,
            password=body.password,
            phone=body.phone,
        )
        record_audit(container, AuditAction.USER_CREATE, ResourceType.USER, user_id, {"role": Role.INSTRUCTOR.value})
        return ok(container.user_service.get_user(user_id).public(), status=201)

    @app.route("/api/admin/users/<int:user_id>", methods=["PATCH"], endpoint="admin_update_user")
    @role_required(Role.ADMIN)
    def admin_update_user(user_id: int):
        body = parse_body(UpdateUserRequest)
        before = container.user_service.get_user(user_id).public()
        updated = container.user_service.update_user(
            current_role=current_role(),
            current_user_id=current_user_id(),
            user_id=user_id,
            full_name=body.full_name,
            role=body.role,
            status=body.status,
            phone=body.phone,
        )
        container.audit_service.record_state_change(
            user_id=current_user_id(),
            action=AuditAction.USER_UPDATE,
            resource_type=ResourceType.USER,
            resource_id=user_id,
            before=before,
            after=updated.public(),
            headers=request.headers,
            remote_addr=request.remote_addr,
        )
        container.cache.delete_prefix("stats:")
        return ok(updated.public())

    @app.route("/api/admin/users/<int:user_id>", methods=["DELETE"], endpoint="admin_delete_user")
    @role_required(Role.ADMIN)
    def admin_delete_user(user_id: int):
        container.user_service.delete_user(current_role=current_role(), current_user_id=current_user_id(), user_id=user_id)
        record_audit(container, AuditAction.USER_DELETE, ResourceType.USER, user_id)
        container.cache.delete_prefix("stats:")
        return ok(message="User deleted")

    @app.route("/api/admin/audit-logs", endpoint="admin_audit_logs")
    @role_required(Role.ADMIN)
    def admin_audit_logs():
        limit_, offset = pagination()
        logs = container.audit_service.list_logs(
            user_id=request.args.get("user_id", type=int),
            action=enum_arg("action", AuditAction),
            resource_type=enum_arg("resource_type", ResourceType),
            limit=limit_,
            offset=offset,
        )
        return ok([entry.to_dict() for entry in logs])
