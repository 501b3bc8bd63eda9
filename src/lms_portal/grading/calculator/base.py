from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PenaltyResult:
    original_score: float
    penalty_rate: float
    penalty_amount: float
    final_score: float

    @property
    def applied(self) -> bool:
        return self.penalty_amount > 0


class LatePenaltyCalculator(ABC):
    """Calculator interface (Strategy Pattern for late penalties)."""

    @abstractmethod
    def apply(self, *, score: float, late_penalty: float | None, days_late: int, is_late: bool) -> PenaltyResult:
        raise NotImplementedError
