from __future__ import annotations

from functools import wraps

from flask import current_app, jsonify, make_response, request
from flask_login import current_user

from ..common.rate_limit import RateLimitDecision, RateLimiter, client_identifier


def _apply_headers(response, decision: RateLimitDecision) -> None:
    response.headers["X-RateLimit-Limit"] = str(decision.limit)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
    response.headers["X-RateLimit-Reset"] = str(int(decision.reset_at))


def rate_limited(limiter: RateLimiter, rule_name: str):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if not current_app.config.get("RATE_LIMIT_ENABLED", True):
                return view(*args, **kwargs)

            user_id = current_user.user_id if current_user.is_authenticated else None
            identifier = client_identifier(
                forwarded_for=request.headers.get("X-Forwarded-For"),
                remote_addr=request.remote_addr,
                user_id=user_id,
            )
            decision = limiter.hit(rule_name, identifier)
            if not decision.allowed:
                response = jsonify({"success": False, "message": decision.message, "retry_after": decision.retry_after})
                response.status_code = 429
                response.headers["Retry-After"] = str(decision.retry_after)
                _apply_headers(response, decision)
                return response

            response = make_response(view(*args, **kwargs))
            _apply_headers(response, decision)
            return response

        return wrapper

    return decorator


def install_general_limit(app, limiter: RateLimiter, *, exempt_prefixes=("/api/webhooks/", "/api/cron/")) -> None:
    """Apply the ``general`` rule to every /api request before routing."""

    @app.before_request
    def _general_rate_limit():
        if not app.config.get("RATE_LIMIT_ENABLED", True):
            return None
        path = request.path
        if not path.startswith("/api/") or path.startswith(tuple(exempt_prefixes)):
            return None

        identifier = client_identifier(forwarded_for=request.headers.get("X-Forwarded-For"), remote_addr=request.remote_addr)
        decision = limiter.hit("general", identifier)
        if decision.allowed:
            return None
        response = jsonify({"success": False, "message": decision.message, "retry_after": decision.retry_after})
        response.status_code = 429
        response.headers["Retry-After"] = str(decision.retry_after)
        _apply_headers(response, decision)
        return response
