from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

import pytest

from lms_portal.common.cache import TTLCache
from lms_portal.core.enums import Role, UserStatus
from lms_portal.core.exceptions import AuthenticationError, AuthorizationError, ConflictError, ValidationError
from lms_portal.users.model import PasswordResetToken, User
from lms_portal.users.service import AuthService, UserService, hash_reset_token


class InMemoryUsers:
    def __init__(self):
        self.users: dict[int, User] = {}
        self.tokens: dict[int, PasswordResetToken] = {}

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.email == email.strip().lower()), None)

    def create_user(self, *, email, full_name, password_hash, role, status=UserStatus.ACTIVE, phone=None) -> int:
        user_id = len(self.users) + 1
        self.users[user_id] = User(user_id, email, full_name, password_hash, role, status, datetime(2026, 1, 1), phone)
        return user_id

    def update_user(self, user_id, *, full_name=None, role=None, status=None, phone=None) -> bool:
        u = self.users[user_id]
        self.users[user_id] = replace(
            u,
            full_name=full_name or u.full_name,
            role=role or u.role,
            status=status or u.status,
            phone=phone or u.phone,
        )
        return True

    def set_password_hash(self, user_id: int, password_hash: str) -> bool:
        self.users[user_id] = replace(self.users[user_id], password_hash=password_hash)
        return True

    def set_last_login(self, user_id: int, at: datetime) -> None:
        self.users[user_id] = replace(self.users[user_id], last_login_at=at)

    def create_reset_token(self, *, user_id: int, token_hash: str, expires_at: datetime) -> int:
        token_id = len(self.tokens) + 1
        self.tokens[token_id] = PasswordResetToken(token_id, user_id, token_hash, expires_at)
        return token_id

    def get_reset_token(self, token_hash: str) -> Optional[PasswordResetToken]:
        return next((t for t in self.tokens.values() if t.token_hash == token_hash), None)

    def mark_reset_token_used(self, token_id: int, at: datetime) -> None:
        self.tokens[token_id] = replace(self.tokens[token_id], used_at=at)


@pytest.fixture
def users() -> InMemoryUsers:
    return InMemoryUsers()


@pytest.fixture
def auth(users) -> AuthService:
    return AuthService(users, secret_key="unit-test-secret", token_max_age_seconds=3600)


def test_register_creates_student_and_rejects_duplicate_email(auth, users):
    s_user = auth.register(email="Ann@Example.com", full_name="Ann", password="password123")

    assert s_user.role == Role.STUDENT
    assert users.get_by_id(s_user.user_id).email == "ann@example.com"
    assert users.get_by_id(s_user.user_id).password_hash != "password123"

    with pytest.raises(ConflictError):
        auth.register(email="ann@example.com", full_name="Other", password="password123")


def test_register_validates_input(auth):
    with pytest.raises(ValidationError):
        auth.register(email="not-an-email", full_name="Ann", password="password123")
    with pytest.raises(ValidationError):
        auth.register(email="ann@example.com", full_name="Ann", password="short")


def test_authenticate_checks_password_and_status(auth, users, fixed_now):
    s_user = auth.register(email="ann@example.com", full_name="Ann", password="password123")

    assert auth.authenticate("ANN@example.com", "password123", now=fixed_now).user_id == s_user.user_id
    assert users.get_by_id(s_user.user_id).last_login_at == fixed_now

    with pytest.raises(AuthenticationError):
        auth.authenticate("ann@example.com", "wrong-password")
    with pytest.raises(AuthenticationError):
        auth.authenticate("nobody@example.com", "password123")

    users.update_user(s_user.user_id, status=UserStatus.SUSPENDED)
    with pytest.raises(AuthenticationError):
        auth.authenticate("ann@example.com", "password123")


def test_bearer_token_round_trip_and_tampering(auth):
    s_user = auth.register(email="ann@example.com", full_name="Ann", password="password123")
    token = auth.issue_token(s_user)

    assert auth.load_token(token).user_id == s_user.user_id
    with pytest.raises(AuthenticationError):
        auth.load_token(token + "tampered")


def test_token_signed_with_another_key_is_rejected(auth, users):
    s_user = auth.register(email="ann@example.com", full_name="Ann", password="password123")
    other = AuthService(users, secret_key="another-secret")
    with pytest.raises(AuthenticationError):
        auth.load_token(other.issue_token(s_user))


def test_reset_token_is_single_use(auth, users, fixed_now):
    s_user = auth.register(email="ann@example.com", full_name="Ann", password="password123")
    raw = auth.request_password_reset("ann@example.com", now=fixed_now)

    stored = users.get_reset_token(hash_reset_token(raw))
    assert stored.expires_at == fixed_now + timedelta(hours=1)
    assert stored.token_hash != raw

    assert auth.reset_password(token=raw, new_password="new-password-1", now=fixed_now) == s_user.user_id
    assert auth.authenticate("ann@example.com", "new-password-1").user_id == s_user.user_id

    with pytest.raises(ValidationError):
        auth.reset_password(token=raw, new_password="new-password-2", now=fixed_now)


def test_reset_token_expires_after_one_hour(auth, fixed_now):
    auth.register(email="ann@example.com", full_name="Ann", password="password123")
    raw = auth.request_password_reset("ann@example.com", now=fixed_now)

    with pytest.raises(ValidationError, match="expired"):
        auth.reset_password(token=raw, new_password="new-password-1", now=fixed_now + timedelta(minutes=61))


def test_reset_request_for_unknown_email_returns_none(auth):
    assert auth.request_password_reset("ghost@example.com") is None


def test_admin_cannot_demote_self(users):
    service = UserService(users)
    admin_id = users.create_user(email="admin@example.com", full_name="Admin", password_hash="x", role=Role.ADMIN)

    with pytest.raises(ValidationError):
        service.update_user(current_role=Role.ADMIN, current_user_id=admin_id, user_id=admin_id, role=Role.STUDENT)
    with pytest.raises(AuthorizationError):
        service.create_instructor(current_role=Role.STUDENT, email="i@example.com", full_name="I", password="password123")

    instructor_id = service.create_instructor(
        current_role=Role.ADMIN, email="i@example.com", full_name="Ines", password="password123"
    )
    assert service.get_user(instructor_id).role == Role.INSTRUCTOR


def test_cached_user_is_refreshed_after_update(users):
    service = UserService(users, TTLCache(default_ttl=300))
    admin_id = users.create_user(email="admin@example.com", full_name="Admin", password_hash="x", role=Role.ADMIN)
    student_id = users.create_user(email="s@example.com", full_name="Sam", password_hash="x", role=Role.STUDENT)

    assert service.get_user(student_id).full_name == "Sam"
    updated = service.update_user(
        current_role=Role.ADMIN, current_user_id=admin_id, user_id=student_id, full_name="Samuel"
    )
    assert updated.full_name == "Samuel"
    assert service.get_user(student_id).full_name == "Samuel"
