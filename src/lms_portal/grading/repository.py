from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Rubric


class RubricRepository(Protocol):
    def get_for_assignment(self, assignment_id: int) -> Optional[Rubric]:
        raise NotImplementedError

    def save(self, *, assignment_id: int, title: str, criteria: Sequence[dict]) -> int:
        """Replace the assignment's rubric.

        ``criteria`` items: ``{"name", "weight", "levels": [{"label", "points"}]}``.
        """

        raise NotImplementedError
