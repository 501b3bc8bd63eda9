from __future__ import annotations

import hmac
import logging

from flask import Flask, jsonify, request

from ..web.http import ok

logger = logging.getLogger(__name__)


def register(app: Flask, container) -> None:
    @app.route("/api/cron/reminders", methods=["POST"], endpoint="cron_process_reminders")
    def cron_process_reminders():
        secret = app.config.get("CRON_SECRET") or ""
        provided = request.headers.get("X-Cron-Secret", "")
        if not secret or not hmac.compare_digest(secret, provided):
            logger.warning("rejected reminder cron call from %s", request.remote_addr)
            return jsonify({"success": False, "message": "Unauthorized"}), 401

        result = container.reminder_service.process_pending()
        payments = container.payment_service.process_payment_reminders()
        return ok({**result.to_dict(), "payment_reminders": payments.to_dict()})
