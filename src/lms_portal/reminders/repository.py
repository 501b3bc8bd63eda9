from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from ..core.enums import ReminderType
from .model import AssignmentReminder


class ReminderRepository(Protocol):
    def upsert(self, *, assignment_id: int, reminder_type: ReminderType, scheduled_for: datetime) -> int:
        """Create or reschedule; an upserted row is always unprocessed."""

        raise NotImplementedError

    def list_due(self, now: datetime, *, limit: int = 100, max_attempts: int = 5) -> Sequence[AssignmentReminder]:
        """Unprocessed reminders with ``scheduled_for <= now`` and fewer than ``max_attempts`` failures, oldest first."""

        raise NotImplementedError

    def record_failure(self, reminder_id: int) -> int:
        """Bump the failure counter; returns the new count."""

        raise NotImplementedError

    def mark_processed(self, reminder_id: int, at: datetime) -> None:
        raise NotImplementedError

    def delete_for_assignment(self, assignment_id: int) -> int:
        raise NotImplementedError

    def list_for_assignment(self, assignment_id: int) -> Sequence[AssignmentReminder]:
        raise NotImplementedError
