from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Sequence

from ..core.enums import AuditAction, ResourceType
from .model import AuditEntry


class AuditRepository(Protocol):
    def add(
        self,
        *,
        user_id: Optional[int],
        action: AuditAction,
        resource_type: ResourceType,
        resource_id: Optional[str],
        ip_address: Optional[str],
        user_agent: Optional[str],
        metadata: Dict[str, Any],
    ) -> int:
        raise NotImplementedError

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
        raise NotImplementedError
