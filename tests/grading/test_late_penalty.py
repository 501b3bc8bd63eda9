from datetime import datetime

import pytest

from lms_portal.common.datetime_utils import days_late
from lms_portal.grading.calculator.per_day_calculator import PerDayPercentagePenalty


def test_per_day_penalty_deducts_rate_times_days():
    result = PerDayPercentagePenalty().apply(score=80, late_penalty=10, days_late=2, is_late=True)
    assert result.penalty_rate == pytest.approx(0.2)
    assert result.penalty_amount == 16.0
    assert result.final_score == 64.0
    assert result.applied


def test_penalty_never_goes_below_zero():
    result = PerDayPercentagePenalty().apply(score=50, late_penalty=25, days_late=6, is_late=True)
    assert result.final_score == 0.0
    assert result.penalty_amount == 50.0


def test_no_penalty_when_on_time_or_no_rate():
    calc = PerDayPercentagePenalty()
    assert calc.apply(score=70, late_penalty=10, days_late=0, is_late=False).final_score == 70.0
    assert calc.apply(score=70, late_penalty=None, days_late=3, is_late=True).final_score == 70.0
    assert not calc.apply(score=70, late_penalty=0, days_late=3, is_late=True).applied


def test_days_late_rounds_partial_days_up():
    due = datetime(2026, 3, 1, 23, 59)
    assert days_late(due, datetime(2026, 3, 1, 23, 0)) == 0
    assert days_late(due, datetime(2026, 3, 2, 0, 30)) == 1
    assert days_late(due, datetime(2026, 3, 3, 1, 0)) == 2
