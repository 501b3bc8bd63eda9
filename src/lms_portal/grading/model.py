from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .calculator.base import PenaltyResult


@dataclass(frozen=True)
class RubricLevel:
    level_id: int
    label: str
    points: float


@dataclass(frozen=True)
class RubricCriterion:
    criterion_id: int
    name: str
    weight: float
    levels: Tuple[RubricLevel, ...]

    @property
    def max_points(self) -> float:
        return max((l.points for l in self.levels), default=0.0)


@dataclass(frozen=True)
class Rubric:
    rubric_id: int
    assignment_id: int
    title: str
    criteria: Tuple[RubricCriterion, ...]

    def to_dict(self) -> dict:
        return {
            "id": self.rubric_id,
            "assignment_id": self.assignment_id,
            "title": self.title,
            "criteria": [
                {
                    "id": c.criterion_id,
                    "name": c.name,
                    "weight": c.weight,
                    "levels": [{"id": l.level_id, "label": l.label, "points": l.points} for l in c.levels],
                }
                for c in self.criteria
            ],
        }


@dataclass
class GradeValidation:
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    penalty: Optional[PenaltyResult] = None

    def to_dict(self) -> dict:
        data = {"valid": self.valid, "errors": self.errors, "warnings": self.warnings}
        if self.penalty:
            data["penalty"] = {
                "original_score": self.penalty.original_score,
                "penalty_amount": self.penalty.penalty_amount,
                "final_score": self.penalty.final_score,
            }
        return data
