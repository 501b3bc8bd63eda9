from __future__ import annotations

from typing import Mapping

from ..core.exceptions import ValidationError
from .model import Rubric

LETTER_GRADES = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))


def letter_grade(percentage: float) -> str:
    for threshold, letter in LETTER_GRADES:
        if percentage >= threshold:
            return letter
    return "F"


def score_rubric(rubric: Rubric, selections: Mapping[int, int], *, total_points: float) -> float:
    """Weighted rubric score scaled to ``total_points``.

    ``selections`` maps criterion id to the chosen level id; every criterion
    must be scored.
    """
    if not rubric.criteria:
        raise ValidationError("Rubric has no criteria")

    weight_sum = sum(c.weight for c in rubric.criteria)
    if weight_sum <= 0:
        raise ValidationError("Rubric weights must add up to more than zero")

    earned = 0.0
    for criterion in rubric.criteria:
        level_id = selections.get(criterion.criterion_id)
        if level_id is None:
            raise ValidationError(f"Criterion '{criterion.name}' has not been scored")
        level = next((l for l in criterion.levels if l.level_id == int(level_id)), None)
        if level is None:
            raise ValidationError(f"Unknown level {level_id} for criterion '{criterion.name}'")
        if criterion.max_points > 0:
            earned += (level.points / criterion.max_points) * criterion.weight

    return round(earned / weight_sum * float(total_points), 2)
