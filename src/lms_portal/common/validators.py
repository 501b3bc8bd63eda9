from __future__ import annotations

import re
from typing import Optional

from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required", {field_name: ["This field is required"]})
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(
            f"{field_name} must be at least {min_len} characters",
            {field_name: [f"Must be at least {min_len} characters"]},
        )
    return value


def require_email(value: str, field_name: str = "email") -> str:
    v = require_non_empty(value, field_name).lower()
    if not _EMAIL_RE.match(v):
        raise ValidationError("Invalid email address", {field_name: ["Invalid email address"]})
    return v


def require_range(value: float, field_name: str, low: float, high: float) -> float:
    if value is None or value < low or value > high:
        raise ValidationError(
            f"{field_name} must be between {low:g} and {high:g}",
            {field_name: [f"Must be between {low:g} and {high:g}"]},
        )
    return value


def slugify(value: str, fallback: Optional[str] = None) -> str:
    slug = _SLUG_STRIP.sub("-", (value or "").lower()).strip("-")
    if not slug:
        if fallback is None:
            raise ValidationError("Cannot build a slug from an empty title", {"slug": ["Invalid slug"]})
        return fallback
    return slug
