from __future__ import annotations

import logging
from dataclasses import dataclass

import mysql.connector
from flask import Flask
from werkzeug.security import generate_password_hash

from ..common.datetime_utils import now_local
from ..core.enums import CourseStatus, Role, UserStatus
from ..extensions import db
from . import orm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBTarget:
    host: str
    port: int
    user: str
    password: str
    database: str


def _as_target(db_config: dict) -> DBTarget:
    return DBTarget(
        host=str(db_config.get("host", "localhost")),
        port=int(db_config.get("port", 3306)),
        user=str(db_config.get("user", "root")),
        password=str(db_config.get("password", "")),
        database=str(db_config.get("database", "lms_db")),
    )


def ensure_database_exists(db_config: dict) -> None:
    """CREATE DATABASE IF NOT EXISTS on the MySQL server; create_all needs the schema to exist."""
    target = _as_target(db_config)
    conn = mysql.connector.connect(
        host=target.host,
        port=target.port,
        user=target.user,
        password=target.password,
        use_pure=True,
    )
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def init_db(app: Flask, *, db_config: dict | None = None) -> list[str]:
    """Create every table (idempotent). Returns the table names."""
    if db_config and app.config["SQLALCHEMY_DATABASE_URI"].startswith("mysql"):
        ensure_database_exists(db_config)
    with app.app_context():
        db.create_all()
        tables = sorted(db.metadata.tables)
    logger.info("schema ready (tables=%d)", len(tables))
    return tables


DEMO_USERS = (
    ("Admin Demo", "admin@lms.local", "admin12345", Role.ADMIN),
    ("Ada Instructor", "instructor@lms.local", "teach12345", Role.INSTRUCTOR),
    ("Sam Student", "student@lms.local", "learn12345", Role.STUDENT),
)


def ensure_demo_data(app: Flask) -> None:
    """Upsert the demo accounts plus one published free course with two lessons."""
    with app.app_context():
        ids = {}
        for full_name, email, password, role in DEMO_USERS:
            row = orm.User.query.filter_by(email=email).first()
            if row is None:
                row = orm.User(email=email)
                db.session.add(row)
            row.full_name = full_name
            row.password_hash = generate_password_hash(password)
            row.role = role.value
            row.status = UserStatus.ACTIVE.value
            db.session.flush()
            ids[role] = row.id

        course = orm.Course.query.filter_by(slug="intro-to-python").first()
        if course is None:
            course = orm.Course(
                title="Intro to Python",
                slug="intro-to-python",
                description="Variables, control flow and functions.",
                category="programming",
                price=0,
                application_fee=0,
                installment_plan="standard",
                status=CourseStatus.PUBLISHED.value,
                instructor_id=ids[Role.INSTRUCTOR],
                published_at=now_local(),
            )
            course.lessons = [
                orm.Lesson(title="Getting started", position=1, is_published=True),
                orm.Lesson(title="Control flow", position=2, is_published=True),
            ]
            db.session.add(course)

        db.session.commit()
    logger.info("demo seed ready")
