from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Sequence

from sqlalchemy import func, or_

from ..core.enums import Role, UserStatus
from ..database import orm
from ..database.session import session_scope
from ..extensions import db
from .model import PasswordResetToken, User
from .repository import UserRepository


def _to_user(row: orm.User) -> User:
    return User(
        user_id=int(row.id),
        email=row.email,
        full_name=row.full_name,
        password_hash=row.password_hash,
        role=Role(row.role),
        status=UserStatus(row.status),
        created_at=row.created_at,
        phone=row.phone,
        last_login_at=row.last_login_at,
    )


class SQLAlchemyUserRepository(UserRepository):
    def get_by_id(self, user_id: int) -> Optional[User]:
        row = db.session.get(orm.User, int(user_id))
        return _to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        row = orm.User.query.filter(func.lower(orm.User.email) == email.strip().lower()).first()
        return _to_user(row) if row else None

    def create_user(self, *, email, full_name, password_hash, role, status=UserStatus.ACTIVE, phone=None) -> int:
        with session_scope(conflict_message="Email is already registered") as session:
            row = orm.User(
                email=email.strip().lower(),
                full_name=full_name,
                password_hash=password_hash,
                role=Role(role).value,
                status=UserStatus(status).value,
                phone=phone,
            )
            session.add(row)
            session.flush()
            return int(row.id)

    def update_user(self, user_id, *, full_name=None, role=None, status=None, phone=None) -> bool:
        with session_scope() as session:
            row = session.get(orm.User, int(user_id))
            if not row:
                return False
            if full_name is not None:
                row.full_name = full_name
            if role is not None:
                row.role = Role(role).value
            if status is not None:
                row.status = UserStatus(status).value
            if phone is not None:
                row.phone = phone
            return True

    def set_password_hash(self, user_id: int, password_hash: str) -> bool:
        with session_scope() as session:
            row = session.get(orm.User, int(user_id))
            if not row:
                return False
            row.password_hash = password_hash
            return True

    def set_last_login(self, user_id: int, at: datetime) -> None:
        with session_scope() as session:
            row = session.get(orm.User, int(user_id))
            if row:
                row.last_login_at = at

    def delete_by_id(self, user_id: int) -> bool:
        with session_scope() as session:
            row = session.get(orm.User, int(user_id))
            if not row:
                return False
            session.delete(row)
            return True

    def list_users(self, *, role=None, status=None, search=None, limit=50, offset=0) -> Sequence[User]:
        q = orm.User.query
        if role:
            q = q.filter(orm.User.role == Role(role).value)
        if status:
            q = q.filter(orm.User.status == UserStatus(status).value)
        if search:
            like = f"%{search.strip()}%"
            q = q.filter(or_(orm.User.email.ilike(like), orm.User.full_name.ilike(like)))
        rows = q.order_by(orm.User.created_at.desc(), orm.User.id.desc()).offset(int(offset)).limit(int(limit)).all()
        return [_to_user(r) for r in rows]

    def count_by_role(self) -> Dict[str, int]:
        rows = db.session.query(orm.User.role, func.count(orm.User.id)).group_by(orm.User.role).all()
        counts = {r.value: 0 for r in Role}
        counts.update({role: int(n) for role, n in rows})
        return counts

    def create_reset_token(self, *, user_id: int, token_hash: str, expires_at: datetime) -> int:
        with session_scope() as session:
            row = orm.PasswordResetToken(user_id=int(user_id), token_hash=token_hash, expires_at=expires_at)
            session.add(row)
            session.flush()
            return int(row.id)

    def get_reset_token(self, token_hash: str) -> Optional[PasswordResetToken]:
        row = orm.PasswordResetToken.query.filter_by(token_hash=token_hash).first()
        if not row:
            return None
        return PasswordResetToken(
            token_id=int(row.id),
            user_id=int(row.user_id),
            token_hash=row.token_hash,
            expires_at=row.expires_at,
            used_at=row.used_at,
        )

    def mark_reset_token_used(self, token_id: int, at: datetime) -> None:
        with session_scope() as session:
            row = session.get(orm.PasswordResetToken, int(token_id))
            if row:
                row.used_at = at
