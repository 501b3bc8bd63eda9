from __future__ import annotations

from datetime import datetime

import pytest

from lms_portal import create_app
from lms_portal.core.enums import Role
from lms_portal.extensions import db


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture
def app():
    app = create_app("lms_portal.settings.testing")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def container(app):
    return app.extensions["lms_container"]


@pytest.fixture
def make_user(app, container):
    """Create an account directly and return ``(user_id, auth_headers)``."""

    def _make(email: str, role: Role = Role.STUDENT, *, password: str = "password123", full_name: str = "Test User"):
        with app.app_context():
            if role == Role.STUDENT:
                s_user = container.auth_service.register(email=email, full_name=full_name, password=password)
                user_id = s_user.user_id
            else:
                user_id = container.user_service.create_instructor(
                    current_role=Role.ADMIN, email=email, full_name=full_name, password=password
                )
                if role == Role.ADMIN:
                    container.users_repo.update_user(user_id, role=Role.ADMIN)
            token = container.auth_service.issue_token(container.auth_service.get_session_user(user_id))
        return user_id, {"Authorization": f"Bearer {token}"}

    return _make
