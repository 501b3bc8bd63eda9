from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..core.constants import DEFAULT_PAGE_LIMIT
from ..core.enums import AuditAction, ResourceType
from .model import AuditEntry
from .repository import AuditRepository

logger = logging.getLogger(__name__)


def client_info(headers: Optional[Mapping[str, str]], remote_addr: Optional[str] = None) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(ip_address, user_agent)`` from request headers."""
    headers = headers or {}
    forwarded = headers.get("X-Forwarded-For")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = headers.get("X-Real-IP") or remote_addr
    return ip or None, headers.get("User-Agent")


def changed_fields(before: Mapping[str, Any], after: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    keys = set(before) | set(after)
    return {k: {"from": before.get(k), "to": after.get(k)} for k in sorted(keys) if before.get(k) != after.get(k)}


class AuditService:
    """Write and query the audit trail.

    Writes never raise: a failed insert is logged and swallowed so the
    business action that triggered it still succeeds.
    """

    def __init__(self, logs: AuditRepository):
        self._logs = logs

    def record(
        self,
        *,
        user_id: Optional[int],
        action: AuditAction,
        resource_type: ResourceType,
        resource_id: Any = None,
        metadata: Optional[Dict[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        remote_addr: Optional[str] = None,
    ) -> Optional[int]:
        ip, user_agent = client_info(headers, remote_addr)
        try:
            return self._logs.add(
                user_id=user_id,
                action=action,
                resource_type=resource_type,
                resource_id=str(resource_id) if resource_id is not None else None,
                ip_address=ip,
                user_agent=user_agent,
                metadata=dict(metadata or {}),
            )
        except Exception:
            logger.exception("failed to write audit log action=%s resource=%s:%s", action, resource_type, resource_id)
            return None

    def record_state_change(
        self,
        *,
        user_id: Optional[int],
        action: AuditAction,
        resource_type: ResourceType,
        resource_id: Any,
        before: Mapping[str, Any],
        after: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
        remote_addr: Optional[str] = None,
    ) -> Optional[int]:
        changes = changed_fields(before, after)
        return self.record(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            metadata={"changes": changes, "changed_fields": list(changes)},
            headers=headers,
            remote_addr=remote_addr,
        )

    def list_logs(
        self,
        *,
        user_id: Optional[int] = None,
        action: Optional[AuditAction] = None,
        resource_type: Optional[ResourceType] = None,
        resource_id: Any = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> Sequence[AuditEntry]:
        return self._logs.list_logs(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            limit=max(1, min(int(limit), 500)),
            offset=max(0, int(offset)),
        )
