from __future__ import annotations

from functools import wraps

from flask import Flask, jsonify
from flask_login import current_user

from ..core.enums import Role
from ..core.exceptions import AuthenticationError
from ..extensions import login_manager


def init_auth(app: Flask, container) -> None:
    """Cookie sessions come from Flask-Login; API clients send ``Authorization: Bearer``."""
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str):
        try:
            return container.auth_service.get_session_user(int(user_id))
        except ValueError:
            return None

    @login_manager.request_loader
    def load_user_from_request(req):
        header = req.headers.get("Authorization", "")
        if not header.lower().startswith("bearer "):
            return None
        try:
            return container.auth_service.load_token(header[7:].strip())
        except AuthenticationError:
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"success": False, "message": "Authentication required"}), 401


def role_required(*roles: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return login_manager.unauthorized()
            if current_user.role not in roles:
                return jsonify({"success": False, "message": "Insufficient permissions"}), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_role() -> Role:
    return current_user.role
