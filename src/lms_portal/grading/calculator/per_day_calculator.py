from __future__ import annotations

from .base import LatePenaltyCalculator, PenaltyResult


class PerDayPercentagePenalty(LatePenaltyCalculator):
    """Deduct ``late_penalty`` percent of the score per day late, not below 0."""

    def apply(self, *, score: float, late_penalty: float | None, days_late: int, is_late: bool) -> PenaltyResult:
        score = float(score)
        if not is_late or not late_penalty or days_late <= 0:
            return PenaltyResult(original_score=score, penalty_rate=0.0, penalty_amount=0.0, final_score=score)

        rate = (float(late_penalty) / 100) * int(days_late)
        amount = score * rate
        final = max(0.0, score - amount)
        return PenaltyResult(
            original_score=score,
            penalty_rate=rate,
            penalty_amount=round(min(amount, score), 2),
            final_score=round(final, 2),
        )
