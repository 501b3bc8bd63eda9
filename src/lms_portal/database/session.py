from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import ConflictError
from ..extensions import db


@contextmanager
def session_scope(*, conflict_message: str = "Record already exists") -> Iterator[Session]:
    """Yield the Flask-SQLAlchemy session and commit on success.

    Unique-constraint violations surface as ``ConflictError``.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ConflictError(conflict_message) from exc
    except Exception:
        session.rollback()
        raise
