"""Small in-process TTL cache.

Entries are recomputed idempotently on a miss; there is no stampede guard
beyond the lock around the dict itself.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar

from ..core.constants import DEFAULT_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    def __init__(self, default_ttl: int = DEFAULT_CACHE_TTL_SECONDS, *, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = int(default_ttl)
        self._clock = clock
        self._data: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        seconds = self.default_ttl if ttl is None else int(ttl)
        with self._lock:
            self._data[key] = _Entry(value=value, expires_at=self._clock() + seconds)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._data[key]
                return None
            return entry.value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._data if k.startswith(prefix)]
            for k in keys:
                del self._data[k]
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def cleanup(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._data.items() if now > e.expires_at]
            for k in expired:
                del self._data[k]
        if expired:
            logger.debug("cache cleanup removed %d entries", len(expired))
        return len(expired)

    def size(self) -> int:
        with self._lock:
            return len(self._data)

    def get_or_set(self, key: str, factory: Callable[[], T], ttl: Optional[int] = None) -> T:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = factory()
        self.set(key, value, ttl)
        return value


class CacheKeys:
    @staticmethod
    def user(user_id: int) -> str:
        return f"user:{user_id}"

    @staticmethod
    def course(course_id: int) -> str:
        return f"course:{course_id}"

    @staticmethod
    def catalog(category: Optional[str] = None) -> str:
        return f"courses:all:{category}" if category else "courses:all"

    @staticmethod
    def stats(name: str) -> str:
        return f"stats:{name}"


def invalidate_course(cache: TTLCache, course_id: int) -> None:
    cache.delete(CacheKeys.course(course_id))
    cache.delete_prefix(CacheKeys.catalog())
    cache.delete_prefix("stats:")


def invalidate_user(cache: TTLCache, user_id: int) -> None:
    cache.delete(CacheKeys.user(user_id))
    cache.delete_prefix("stats:")
