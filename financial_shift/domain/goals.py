"""Savings goal projection"""

import math
from datetime import date
from typing import Optional

from financial_shift.domain.models import Goal, GoalProjection
from financial_shift.domain.validation import require_non_negative, to_cents
from financial_shift.utils.date_utils import add_months, days_between, months_until_max_date

DAYS_PER_MONTH = 30


def projected_date(as_of: date, months: Optional[int]) -> Optional[date]:
    if months is None or months > months_until_max_date(as_of):
        return None
    return add_months(as_of, months)


def calculate_goal_projection(
    goal: Goal,
    monthly_contribution: float,
    as_of: Optional[date] = None,
) -> GoalProjection:
    """
    Project when a goal completes at the current monthly contribution.

    - required_monthly_contribution spreads the remaining gap over the months
      left until target_date (30-day months); past the deadline it is the
      whole gap
    - on_track: goal already funded, or the contribution meets the required
      rate while the deadline is still ahead
    - months_to_completion is None when nothing is contributed and money is
      still needed
    - projected_completion_date is None when completion falls past the last
      representable date

    Over-funded goals (current > target) have zero remaining and are on track.
    """
    target = require_non_negative(goal.target_amount, "target_amount")
    current = require_non_negative(goal.current_amount, "current_amount")
    monthly_contribution = require_non_negative(monthly_contribution, "monthly_contribution")
    as_of = as_of or date.today()

    remaining = max(0.0, target - current)
    months_until_target = days_between(as_of, goal.target_date) / DAYS_PER_MONTH

    if months_until_target > 0:
        required = remaining / months_until_target
    else:
        required = remaining

    if remaining == 0:
        months_to_completion: Optional[int] = 0
    elif monthly_contribution > 0:
        months_to_completion = math.ceil(remaining / monthly_contribution)
    else:
        months_to_completion = None

    if remaining == 0:
        on_track = True
    else:
        on_track = months_until_target > 0 and monthly_contribution >= required

    return GoalProjection(
        remaining_amount=to_cents(remaining),
        months_to_completion=months_to_completion,
        projected_completion_date=projected_date(as_of, months_to_completion),
        required_monthly_contribution=to_cents(required),
        on_track=on_track,
        completion_percentage=round(current / target * 100, 2) if target > 0 else 100.0,
    )
