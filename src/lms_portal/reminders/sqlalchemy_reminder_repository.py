from __future__ import annotations

from typing import Sequence

from ..core.enums import ReminderType
from ..database import orm
from ..database.session import session_scope
from .model import AssignmentReminder
from .repository import ReminderRepository


def _to_reminder(row: orm.AssignmentReminder) -> AssignmentReminder:
    return AssignmentReminder(
        reminder_id=int(row.id),
        assignment_id=int(row.assignment_id),
        reminder_type=ReminderType(row.reminder_type),
        scheduled_for=row.scheduled_for,
        processed=bool(row.processed),
        processed_at=row.processed_at,
        attempts=int(row.attempts or 0),
    )


class SQLAlchemyReminderRepository(ReminderRepository):
    def upsert(self, *, assignment_id, reminder_type, scheduled_for) -> int:
        with session_scope() as session:
            row = orm.AssignmentReminder.query.filter_by(
                assignment_id=int(assignment_id), reminder_type=ReminderType(reminder_type).value
            ).first()
            if not row:
                row = orm.AssignmentReminder(assignment_id=int(assignment_id), reminder_type=ReminderType(reminder_type).value)
                session.add(row)
            row.scheduled_for = scheduled_for
            row.processed = False
            row.processed_at = None
            row.attempts = 0
            session.flush()
            return int(row.id)

    def list_due(self, now, *, limit=100, max_attempts=5) -> Sequence[AssignmentReminder]:
        rows = (
            orm.AssignmentReminder.query.filter(
                orm.AssignmentReminder.processed.is_(False),
                orm.AssignmentReminder.scheduled_for <= now,
                orm.AssignmentReminder.attempts < int(max_attempts),
            )
            .order_by(orm.AssignmentReminder.scheduled_for, orm.AssignmentReminder.id)
            .limit(int(limit))
            .all()
        )
        return [_to_reminder(r) for r in rows]

    def mark_processed(self, reminder_id, at) -> None:
        with session_scope() as session:
            row = session.get(orm.AssignmentReminder, int(reminder_id))
            if row:
                row.processed = True
                row.processed_at = at

    def record_failure(self, reminder_id: int) -> int:
        with session_scope() as session:
            row = session.get(orm.AssignmentReminder, int(reminder_id))
            if not row:
                return 0
            row.attempts = int(row.attempts or 0) + 1
            return row.attempts

    def delete_for_assignment(self, assignment_id: int) -> int:
        with session_scope():
            return int(orm.AssignmentReminder.query.filter_by(assignment_id=int(assignment_id)).delete())

    def list_for_assignment(self, assignment_id: int) -> Sequence[AssignmentReminder]:
        rows = (
            orm.AssignmentReminder.query.filter_by(assignment_id=int(assignment_id))
            .order_by(orm.AssignmentReminder.scheduled_for)
            .all()
        )
        return [_to_reminder(r) for r in rows]
