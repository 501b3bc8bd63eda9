from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import AuditAction, ResourceType
from ..database import orm
from ..database.session import session_scope
from .model import AuditEntry
from .repository import AuditRepository


class SQLAlchemyAuditRepository(AuditRepository):
    def add(self, *, user_id, action, resource_type, resource_id, ip_address, user_agent, metadata) -> int:
        with session_scope() as session:
            row = orm.AuditLog(
                user_id=user_id,
                action=AuditAction(action).value,
                resource_type=ResourceType(resource_type).value,
                resource_id=resource_id,
                ip_address=ip_address,
                user_agent=(user_agent or "")[:500] or None,
                details=metadata or {},
            )
            session.add(row)
            session.flush()
            return int(row.id)

    def list_logs(
        self,
        *,
        user_id: Optional[int] = None,
        action: Optional[AuditAction] = None,
        resource_type: Optional[ResourceType] = None,
        resource_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[AuditEntry]:
        q = orm.AuditLog.query
        if user_id is not None:
            q = q.filter(orm.AuditLog.user_id == int(user_id))
        if action:
            q = q.filter(orm.AuditLog.action == AuditAction(action).value)
        if resource_type:
            q = q.filter(orm.AuditLog.resource_type == ResourceType(resource_type).value)
        if resource_id is not None:
            q = q.filter(orm.AuditLog.resource_id == str(resource_id))
        rows = q.order_by(orm.AuditLog.created_at.desc(), orm.AuditLog.id.desc()).offset(int(offset)).limit(int(limit)).all()
        return [
            AuditEntry(
                log_id=int(r.id),
                user_id=r.user_id,
                action=AuditAction(r.action),
                resource_type=ResourceType(r.resource_type),
                resource_id=r.resource_id,
                ip_address=r.ip_address,
                user_agent=r.user_agent,
                created_at=r.created_at,
                metadata=dict(r.details or {}),
            )
            for r in rows
        ]
