from __future__ import annotations

import logging

import pydantic
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from ..core.exceptions import DomainError, ValidationError

logger = logging.getLogger(__name__)


def _field_errors(exc: pydantic.ValidationError) -> dict:
    errors: dict = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "body"
        errors.setdefault(field, []).append(err.get("msg", "Invalid value"))
    return errors


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        body = {"success": False, "message": str(exc)}
        if isinstance(exc, ValidationError) and exc.errors:
            body["errors"] = exc.errors
        return jsonify(body), exc.status_code

    @app.errorhandler(pydantic.ValidationError)
    def handle_schema_error(exc: pydantic.ValidationError):
        return jsonify({"success": False, "message": "Validation failed", "errors": _field_errors(exc)}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"success": False, "message": exc.description or exc.name}), exc.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.exception("unhandled error: %s", exc)
        return jsonify({"success": False, "message": "Internal server error"}), 500
