from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import ReminderType


@dataclass(frozen=True)
class AssignmentReminder:
    reminder_id: int
    assignment_id: int
    reminder_type: ReminderType
    scheduled_for: datetime
    processed: bool
    processed_at: Optional[datetime] = None
    attempts: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.reminder_id,
            "assignment_id": self.assignment_id,
            "reminder_type": self.reminder_type.value,
            "scheduled_for": self.scheduled_for.isoformat(),
            "processed": self.processed,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
            "attempts": self.attempts,
        }


@dataclass(frozen=True)
class ProcessingResult:
    processed: int
    failed: int
    notifications_sent: int

    def to_dict(self) -> dict:
        return {"processed": self.processed, "failed": self.failed, "notifications_sent": self.notifications_sent}
