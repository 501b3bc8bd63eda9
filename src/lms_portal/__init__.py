"""LMS portal package.

Organized by feature modules (users, courses, assignments, grading, payments, ...)
with a thin Flask controller layer over service and repository layers.
"""
from __future__ import annotations

import importlib
import logging
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask

from .assessments.controller import register as register_assessments
from .assignments.controller import register as register_assignments
from .container import build_container
from .courses.controller import register as register_courses
from .dashboards.controller import register as register_dashboards
from .database.bootstrap import ensure_demo_data, init_db
from .enrollments.controller import register as register_enrollments
from .extensions import db
from .grading.controller import register as register_grading
from .logging_utils import configure_logging
from .notifications.controller import register as register_notifications
from .payments.controller import register as register_payments
from .reminders.controller import register as register_reminders
from .settings import get_settings_module
from .submissions.controller import register as register_submissions
from .users.controller import register as register_users
from .web.auth import init_auth
from .web.errors import register_error_handlers
from .web.rate_limit import install_general_limit

logger = logging.getLogger(__name__)


def create_app(settings_module: Optional[str] = None, *, overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    app.config.from_object(importlib.import_module(settings_module))
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))
    logger.info("starting with settings=%s", settings_module)

    db.init_app(app)

    if app.config.get("AUTO_INIT_DB"):
        init_db(app, db_config=app.config.get("DB_CONFIG"))
    if app.config.get("AUTO_SEED_DB"):
        ensure_demo_data(app)

    container = build_container(settings=app.config)
    app.extensions["lms_container"] = container

    init_auth(app, container)
    register_error_handlers(app)
    install_general_limit(app, container.rate_limiter)

    register_users(app, container)
    register_courses(app, container)
    register_enrollments(app, container)
    register_assignments(app, container)
    register_submissions(app, container)
    register_grading(app, container)
    register_assessments(app, container)
    register_notifications(app, container)
    register_reminders(app, container)
    register_payments(app, container)
    register_dashboards(app, container)

    return app
