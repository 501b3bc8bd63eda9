from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Protocol, Sequence

from ..core.enums import Role, UserStatus
from .model import PasswordResetToken, User


class UserRepository(Protocol):
    """Repository interface for accounts and password reset tokens.

    Services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        email: str,
        full_name: str,
        password_hash: str,
        role: Role,
        status: UserStatus = UserStatus.ACTIVE,
        phone: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def update_user(
        self,
        user_id: int,
        *,
        full_name: Optional[str] = None,
        role: Optional[Role] = None,
        status: Optional[UserStatus] = None,
        phone: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError

    def set_password_hash(self, user_id: int, password_hash: str) -> bool:
        raise NotImplementedError

    def set_last_login(self, user_id: int, at: datetime) -> None:
        raise NotImplementedError

    def delete_by_id(self, user_id: int) -> bool:
        raise NotImplementedError

    def list_users(
        self,
        *,
        role: Optional[Role] = None,
        status: Optional[UserStatus] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[User]:
        raise NotImplementedError

    def count_by_role(self) -> Dict[str, int]:
        raise NotImplementedError

    # Password reset tokens
    def create_reset_token(self, *, user_id: int, token_hash: str, expires_at: datetime) -> int:
        raise NotImplementedError

    def get_reset_token(self, token_hash: str) -> Optional[PasswordResetToken]:
        raise NotImplementedError

    def mark_reset_token_used(self, token_id: int, at: datetime) -> None:
        raise NotImplementedError
