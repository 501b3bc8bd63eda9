from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from flask_login import UserMixin
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from ..common.cache import CacheKeys, TTLCache, invalidate_user
from ..common.datetime_utils import now_local
from ..common.validators import require_email, require_min_length, require_non_empty
from ..core.constants import DEFAULT_SESSION_DAYS, MIN_PASSWORD_LENGTH, RESET_TOKEN_TTL_MINUTES
from ..core.enums import Role, UserStatus
from ..core.exceptions import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser(UserMixin):
    """What Flask-Login keeps for the current request."""

    user_id: int
    email: str
    full_name: str
    role: Role

    def get_id(self) -> str:
        return str(self.user_id)

    def to_dict(self) -> dict:
        return {"id": self.user_id, "email": self.email, "full_name": self.full_name, "role": self.role.value}


def _session_user(user: User) -> SessionUser:
    return SessionUser(user_id=user.user_id, email=user.email, full_name=user.full_name, role=user.role)


def hash_reset_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class AuthService:
    """Use cases: register, login, bearer tokens and password reset."""

    def __init__(
        self,
        users: UserRepository,
        *,
        secret_key: str,
        token_max_age_seconds: int = DEFAULT_SESSION_DAYS * 24 * 3600,
    ):
        self._users = users
        self._serializer = URLSafeTimedSerializer(secret_key, salt="lms-portal-auth")
        self._token_max_age = int(token_max_age_seconds)

    def register(self, *, email: str, full_name: str, password: str, phone: Optional[str] = None) -> SessionUser:
        email = require_email(email)
        full_name = require_non_empty(full_name, "full_name")
        require_min_length(password, "password", MIN_PASSWORD_LENGTH)

        if self._users.get_by_email(email):
            raise ConflictError("Email is already registered")

        user_id = self._users.create_user(
            email=email,
            full_name=full_name,
            password_hash=generate_password_hash(password),
            role=Role.STUDENT,
            phone=phone,
        )
        logger.info("registered student user_id=%s", user_id)
        return SessionUser(user_id=user_id, email=email, full_name=full_name, role=Role.STUDENT)

    def authenticate(self, email: str, password: str, *, now: Optional[datetime] = None) -> SessionUser:
        user = self._users.get_by_email((email or "").strip().lower())
        if not user:
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # placeholder or corrupted hashes
            ok = False

        if not ok:
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError("Account is not active")

        self._users.set_last_login(user.user_id, now or now_local())
        return _session_user(user)

    def issue_token(self, session_user: SessionUser) -> str:
        return self._serializer.dumps({"uid": session_user.user_id, "role": session_user.role.value})

    def load_token(self, token: str) -> SessionUser:
        try:
            data = self._serializer.loads(token, max_age=self._token_max_age)
        except SignatureExpired as exc:
            raise AuthenticationError("Token expired") from exc
        except BadSignature as exc:
            raise AuthenticationError("Invalid token") from exc

        user = self.get_session_user(int(data.get("uid", 0)))
        if not user:
            raise AuthenticationError("Invalid token")
        return user

    def get_session_user(self, user_id: int) -> Optional[SessionUser]:
        user = self._users.get_by_id(int(user_id))
        if not user or not user.is_active:
            return None
        return _session_user(user)

    def request_password_reset(self, email: str, *, now: Optional[datetime] = None) -> Optional[str]:
        """Return the raw reset token, or None for unknown emails.

        Only the SHA-256 hash is stored.
        """
        user = self._users.get_by_email((email or "").strip().lower())
        if not user:
            return None

        now = now or now_local()
        raw = secrets.token_urlsafe(32)
        self._users.create_reset_token(
            user_id=user.user_id,
            token_hash=hash_reset_token(raw),
            expires_at=now + timedelta(minutes=RESET_TOKEN_TTL_MINUTES),
        )
        return raw

    def reset_password(self, *, token: str, new_password: str, now: Optional[datetime] = None) -> int:
        require_min_length(new_password, "password", MIN_PASSWORD_LENGTH)
        now = now or now_local()

        record = self._users.get_reset_token(hash_reset_token(token or ""))
        if not record or record.used_at is not None:
            raise ValidationError("Invalid or already used reset token")
        if now > record.expires_at:
            raise ValidationError("Reset token has expired")

        self._users.set_password_hash(record.user_id, generate_password_hash(new_password))
        self._users.mark_reset_token_used(record.token_id, now)
        return record.user_id


class UserService:
    """Admin user management."""

    def __init__(self, users: UserRepository, cache: Optional[TTLCache] = None):
        self._users = users
        self._cache = cache

    def get_user(self, user_id: int) -> User:
        if self._cache is None:
            user = self._users.get_by_id(int(user_id))
        else:
            user = self._cache.get_or_set(CacheKeys.user(int(user_id)), lambda: self._users.get_by_id(int(user_id)))
        if not user:
            raise NotFoundError("User not found")
        return user

    def list_users(
        self,
        *,
        current_role: Role,
        role: Optional[Role] = None,
        status: Optional[UserStatus] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[User]:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Insufficient permissions")
        return self._users.list_users(role=role, status=status, search=search, limit=limit, offset=offset)

    def create_instructor(
        self,
        *,
        current_role: Role,
        email: str,
        full_name: str,
        password: str,
        phone: Optional[str] = None,
    ) -> int:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Insufficient permissions")

        email = require_email(email)
        full_name = require_non_empty(full_name, "full_name")
        require_min_length(password, "password", MIN_PASSWORD_LENGTH)
        if self._users.get_by_email(email):
            raise ConflictError("Email is already registered")

        user_id = self._users.create_user(
            email=email,
            full_name=full_name,
            password_hash=generate_password_hash(password),
            role=Role.INSTRUCTOR,
            phone=phone,
        )
        self._invalidate(user_id)
        return user_id

    def update_user(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        user_id: int,
        full_name: Optional[str] = None,
        role: Optional[Role] = None,
        status: Optional[UserStatus] = None,
        phone: Optional[str] = None,
    ) -> User:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Insufficient permissions")
        self.get_user(user_id)
        if int(user_id) == int(current_user_id) and (role not in (None, Role.ADMIN) or status not in (None, UserStatus.ACTIVE)):
            raise ValidationError("You cannot demote or deactivate your own account")
        if full_name is not None:
            full_name = require_non_empty(full_name, "full_name")

        self._users.update_user(int(user_id), full_name=full_name, role=role, status=status, phone=phone)
        self._invalidate(user_id)
        return self.get_user(user_id)

    def delete_user(self, *, current_role: Role, current_user_id: int, user_id: int) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Insufficient permissions")
        if int(user_id) == int(current_user_id):
            raise ValidationError("You cannot delete your own account")
        user = self.get_user(user_id)
        if user.role == Role.ADMIN:
            raise ValidationError("Admin accounts cannot be deleted")
        self._users.delete_by_id(user.user_id)
        self._invalidate(user.user_id)

    def _invalidate(self, user_id: int) -> None:
        if self._cache is not None:
            invalidate_user(self._cache, int(user_id))
