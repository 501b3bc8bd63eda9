"""Installment plans for course tuition."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Sequence, Tuple

from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class InstallmentPlan:
    key: str
    name: str
    percentages: Tuple[float, ...]

    @property
    def installments(self) -> int:
        return len(self.percentages)

    def to_dict(self) -> dict:
        return {"key": self.key, "name": self.name, "installments": self.installments, "percentages": list(self.percentages)}


PLANS: Dict[str, InstallmentPlan] = {
    "standard": InstallmentPlan("standard", "Full payment", (100.0,)),
    "3-month": InstallmentPlan("3-month", "3-month plan", (40.0, 30.0, 30.0)),
    "6-month": InstallmentPlan("6-month", "6-month plan", (30.0, 14.0, 14.0, 14.0, 14.0, 14.0)),
}


@dataclass(frozen=True)
class ScheduledInstallment:
    number: int
    amount: float
    percentage: float
    due_date: datetime


def get_plan(key: str) -> InstallmentPlan:
    plan = PLANS.get((key or "").strip())
    if not plan:
        raise ValidationError(f"Unknown installment plan: {key}", {"installment_plan": [f"Must be one of {sorted(PLANS)}"]})
    if round(sum(plan.percentages), 6) != 100:
        raise ValidationError(f"Installment plan {key} does not add up to 100%")
    return plan


def add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    # clamp to the last day of the target month
    for day in (value.day, 30, 29, 28):
        try:
            return value.replace(year=year, month=month, day=day)
        except ValueError:
            continue
    raise ValueError(f"Cannot add {months} months to {value!r}")


def split_amount(total: float, plan: InstallmentPlan) -> List[float]:
    """Split ``total`` by the plan percentages; the last share absorbs rounding."""
    amounts = [round(total * pct / 100, 2) for pct in plan.percentages]
    amounts[-1] = round(total - sum(amounts[:-1]), 2)
    return amounts


def build_schedule(total: float, plan_key: str, *, start: datetime) -> Sequence[ScheduledInstallment]:
    plan = get_plan(plan_key)
    if total <= 0:
        raise ValidationError("Amount must be greater than zero")
    return [
        ScheduledInstallment(number=i + 1, amount=amount, percentage=pct, due_date=add_months(start, i))
        for i, (amount, pct) in enumerate(zip(split_amount(total, plan), plan.percentages))
    ]
