from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional


@dataclass(frozen=True)
class RateLimitRule:
    max_requests: int
    window_seconds: int
    message: str = "Too many requests, please try again later."


DEFAULT_RULES: Mapping[str, RateLimitRule] = {
    "general": RateLimitRule(100, 15 * 60),
    "auth": RateLimitRule(5, 15 * 60, "Too many authentication attempts, please try again later."),
    "payment": RateLimitRule(3, 60, "Too many payment requests, please wait a minute."),
}


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int
    message: str = ""


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Fixed-window request counter keyed by ``<rule>:<identifier>``."""

    def __init__(
        self,
        rules: Optional[Mapping[str, RateLimitRule]] = None,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.rules: Dict[str, RateLimitRule] = dict(rules or DEFAULT_RULES)
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def hit(self, rule_name: str, identifier: str) -> RateLimitDecision:
        rule = self.rules[rule_name]
        key = f"{rule_name}:{identifier}"
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                window = _Window(count=0, reset_at=now + rule.window_seconds)
                self._windows[key] = window
            if window.count >= rule.max_requests:
                return RateLimitDecision(
                    allowed=False,
                    limit=rule.max_requests,
                    remaining=0,
                    reset_at=window.reset_at,
                    retry_after=max(1, math.ceil(window.reset_at - now)),
                    message=rule.message,
                )
            window.count += 1
            return RateLimitDecision(
                allowed=True,
                limit=rule.max_requests,
                remaining=rule.max_requests - window.count,
                reset_at=window.reset_at,
                retry_after=0,
            )

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [k for k, w in self._windows.items() if now >= w.reset_at]
            for k in stale:
                del self._windows[k]
        return len(stale)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


def client_identifier(*, forwarded_for: Optional[str], remote_addr: Optional[str], user_id: Optional[int] = None) -> str:
    ip = "unknown"
    if forwarded_for:
        ip = forwarded_for.split(",")[0].strip() or ip
    elif remote_addr:
        ip = remote_addr
    return f"{user_id}:{ip}" if user_id else ip


def parse_rule(value: str, message: str = RateLimitRule.message) -> RateLimitRule:
    """Parse ``"<max_requests>/<window_seconds>"`` (e.g. ``"5/900"``)."""
    try:
        max_requests, window = (int(part) for part in str(value).split("/", 1))
    except ValueError as e:
        raise ValueError(f"Invalid rate limit rule: {value!r}") from e
    if max_requests < 1 or window < 1:
        raise ValueError(f"Invalid rate limit rule: {value!r}")
    return RateLimitRule(max_requests, window, message)
