from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Type, TypeVar

from flask import jsonify, request
from flask_login import current_user
from pydantic import BaseModel

from ..core.constants import DEFAULT_PAGE_LIMIT
from ..core.enums import AuditAction, ResourceType
from ..core.exceptions import ValidationError

M = TypeVar("M", bound=BaseModel)
E = TypeVar("E", bound=Enum)


def ok(data: Any = None, *, status: int = 200, message: Optional[str] = None, **extra):
    body: dict = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def parse_body(schema: Type[M]) -> M:
    """Validate the JSON body; pydantic errors are turned into 400s by the error handlers."""
    return schema.model_validate(request.get_json(silent=True) or {})


def parse_query(schema: Type[M]) -> M:
    return schema.model_validate(request.args.to_dict())


def pagination() -> tuple[int, int]:
    try:
        limit = int(request.args.get("limit", DEFAULT_PAGE_LIMIT))
        offset = int(request.args.get("offset", 0))
    except ValueError:
        limit, offset = DEFAULT_PAGE_LIMIT, 0
    return max(1, min(limit, 500)), max(0, offset)


def current_user_id() -> int:
    return int(current_user.user_id)


def record_audit(
    container,
    action: AuditAction,
    resource_type: ResourceType,
    resource_id: Any = None,
    metadata: Optional[dict] = None,
    *,
    user_id: Optional[int] = None,
) -> None:
    if user_id is None and current_user.is_authenticated:
        user_id = int(current_user.user_id)
    container.audit_service.record(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        metadata=metadata,
        headers=request.headers,
        remote_addr=request.remote_addr,
    )


def enum_arg(name: str, enum_cls: Type[E]) -> Optional[E]:
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return enum_cls(raw.upper())
    except ValueError as e:
        allowed = [m.value for m in enum_cls]
        raise ValidationError(f"Invalid {name}", {name: [f"Must be one of {allowed}"]}) from e
