from __future__ import annotations

import math
from datetime import datetime, timedelta


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch it; services also accept an explicit ``now``.
    """
    return datetime.now()


def days_late(due: datetime, at: datetime) -> int:
    """Whole days past ``due``, rounded up. Zero when not late."""
    if at <= due:
        return 0
    return math.ceil((at - due) / timedelta(days=1))
