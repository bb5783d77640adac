"""Shift pay engine - overtime, double time and conditional pay differentials"""

from datetime import timedelta
from typing import List, Optional, Tuple

from financial_shift.domain.exceptions import CalculationValidationError
from financial_shift.domain.models import (
    AppliedDifferential,
    PayBreakdown,
    PayDifferential,
    Shift,
    ShiftRule,
)
from financial_shift.domain.validation import (
    require_at_least,
    require_non_negative,
    to_cents,
)
from financial_shift.utils.date_utils import (
    WEEKDAY_ABBREVIATIONS,
    hours_between,
    overlap_hours,
    time_window,
    weekday_abbreviation,
)

RATE_TYPES = ("flat_amount", "multiplier")


def validate_rule(rule: ShiftRule) -> None:
    """Reject pay rules that would produce silently wrong numbers"""
    require_non_negative(rule.base_hourly_rate, "base_hourly_rate")
    require_non_negative(rule.overtime_threshold, "overtime_threshold")
    require_at_least(rule.overtime_multiplier, 1.0, "overtime_multiplier")
    if rule.daily_overtime_threshold is not None:
        require_non_negative(rule.daily_overtime_threshold, "daily_overtime_threshold")
    if rule.double_time_threshold is not None:
        require_non_negative(rule.double_time_threshold, "double_time_threshold")
        require_at_least(rule.double_time_multiplier, 1.0, "double_time_multiplier")

    for diff in rule.differentials:
        if diff.rate_type not in RATE_TYPES:
            raise CalculationValidationError(
                f"Differential '{diff.name}' has unknown rate_type '{diff.rate_type}'"
            )
        if diff.rate_type == "multiplier":
            require_at_least(diff.amount, 1.0, f"differential '{diff.name}' multiplier")
        else:
            require_non_negative(diff.amount, f"differential '{diff.name}' amount")
        unknown_days = set(diff.conditions.days_of_week) - set(WEEKDAY_ABBREVIATIONS)
        if unknown_days:
            raise CalculationValidationError(
                f"Differential '{diff.name}' has unknown days_of_week {sorted(unknown_days)}"
            )


def resolve_hours_worked(shift: Shift, rule: ShiftRule) -> float:
    """
    Paid hours for a shift.

    Explicit hours_worked wins; otherwise the clock span minus an
    auto-deducted meal break when the shift is longer than the break threshold.
    """
    if (shift.start_datetime.utcoffset() is None) != (shift.end_datetime.utcoffset() is None):
        raise CalculationValidationError(
            "Shift start_datetime and end_datetime must both be timezone-aware or both naive"
        )
    if shift.end_datetime < shift.start_datetime:
        raise CalculationValidationError("Shift end_datetime is before start_datetime")

    if shift.hours_worked is not None:
        return require_non_negative(shift.hours_worked, "hours_worked")

    span = hours_between(shift.start_datetime, shift.end_datetime)
    meal_break = rule.meal_break
    if meal_break and meal_break.is_auto_deducted and span > meal_break.unpaid_break_threshold_hours:
        span -= meal_break.break_duration_minutes / 60
    return max(span, 0.0)


def split_hours(hours: float, rule: ShiftRule, prior_week_hours: float = 0.0) -> Tuple[float, float, float]:
    """
    Split worked hours into (regular, overtime, double_time).

    Weekly overtime counts hours already worked this week; a configured daily
    threshold can only increase overtime (no pyramiding). Double-time hours
    come out of the overtime bucket.
    """
    weekly_remaining = max(0.0, rule.overtime_threshold - prior_week_hours)
    overtime = max(0.0, hours - weekly_remaining)

    if rule.daily_overtime_threshold is not None:
        overtime = max(overtime, hours - rule.daily_overtime_threshold)

    double_time = 0.0
    if rule.double_time_threshold is not None:
        double_time = max(0.0, hours - rule.double_time_threshold)
        overtime = max(overtime, double_time)

    regular = hours - overtime
    return regular, overtime - double_time, double_time


def differential_applies_by_tag(diff: PayDifferential, shift: Shift) -> bool:
    return diff.name in shift.differentials or diff.type in shift.differentials


def eligible_hours(diff: PayDifferential, shift: Shift, hours_worked: float) -> float:
    """Hours of the shift covered by a differential, capped at hours worked"""
    if differential_applies_by_tag(diff, shift):
        return hours_worked

    conditions = diff.conditions
    if conditions.is_empty:
        return 0.0

    # Windows opened the day before can spill into the shift (overnight windows).
    # A window counts when the shift starts on a listed day or the window opens on one.
    days = conditions.days_of_week
    shift_day_listed = not days or weekday_abbreviation(shift.start_datetime.date()) in days
    tzinfo = shift.start_datetime.tzinfo
    day = shift.start_datetime.date() - timedelta(days=1)
    total = 0.0
    while day <= shift.end_datetime.date():
        if shift_day_listed or weekday_abbreviation(day) in days:
            window_start, window_end = time_window(day, conditions.start_time, conditions.end_time, tzinfo)
            total += overlap_hours(window_start, window_end, shift.start_datetime, shift.end_datetime)
        day += timedelta(days=1)

    return min(total, hours_worked)


def differential_pay(diff: PayDifferential, hours: float, base_rate: float) -> float:
    """flat_amount adds $/hr; multiplier pays the premium above base (amount - 1)"""
    if diff.rate_type == "flat_amount":
        return hours * diff.amount
    return hours * base_rate * (diff.amount - 1)


def select_differentials(shift: Shift, rule: ShiftRule, hours_worked: float) -> List[AppliedDifferential]:
    """
    All matching stackable differentials, plus the single best-paying
    non-stackable one. Rule order is preserved.
    """
    candidates: List[Tuple[PayDifferential, AppliedDifferential]] = []
    for diff in rule.differentials:
        hours = eligible_hours(diff, shift, hours_worked)
        if hours <= 0:
            continue
        amount = differential_pay(diff, hours, rule.base_hourly_rate)
        candidates.append(
            (
                diff,
                AppliedDifferential(
                    name=diff.name,
                    rate_type=diff.rate_type,
                    rate=diff.amount,
                    hours=round(hours, 2),
                    amount=to_cents(amount),
                ),
            )
        )

    best: Optional[AppliedDifferential] = None
    for diff, applied in candidates:
        if not diff.is_stackable and (best is None or applied.amount > best.amount):
            best = applied

    return [applied for diff, applied in candidates if diff.is_stackable or applied is best]


def calculate_shift_pay(
    shift: Shift,
    rule: ShiftRule,
    withholding_rate: float = 0.25,
    prior_week_hours: float = 0.0,
) -> PayBreakdown:
    """
    Calculate pay for a shift including overtime, double time and differentials.

    Components are rounded to cents and gross_pay is their sum, so
    gross_pay == base_pay + overtime_pay + differential_pay to the cent.
    Withholding is a flat estimate (federal + state + FICA), 25% by default.

    Raises:
        CalculationValidationError: On negative/non-finite rates or hours,
            inverted shift times, or malformed differentials
    """
    validate_rule(rule)
    require_non_negative(prior_week_hours, "prior_week_hours")
    withholding_rate = require_non_negative(withholding_rate, "withholding_rate")
    if withholding_rate > 1:
        raise CalculationValidationError(f"withholding_rate must be at most 1, got {withholding_rate}")

    hours = resolve_hours_worked(shift, rule)
    if hours == 0:
        return PayBreakdown(
            regular_hours=0.0,
            overtime_hours=0.0,
            double_time_hours=0.0,
            base_pay=0.0,
            overtime_pay=0.0,
            differential_pay=0.0,
            differentials_applied=[],
            gross_pay=0.0,
            tax_withholding=0.0,
            net_pay=0.0,
        )

    rate = rule.base_hourly_rate
    regular, overtime, double_time = split_hours(hours, rule, prior_week_hours)

    base_pay = to_cents(regular * rate)
    overtime_pay = to_cents(
        overtime * rate * rule.overtime_multiplier + double_time * rate * rule.double_time_multiplier
    )
    applied = select_differentials(shift, rule, hours)
    diff_pay = to_cents(sum(a.amount for a in applied))

    gross_pay = to_cents(base_pay + overtime_pay + diff_pay)
    tax_withholding = to_cents(gross_pay * withholding_rate)

    return PayBreakdown(
        regular_hours=round(regular, 2),
        overtime_hours=round(overtime, 2),
        double_time_hours=round(double_time, 2),
        base_pay=base_pay,
        overtime_pay=overtime_pay,
        differential_pay=diff_pay,
        differentials_applied=applied,
        gross_pay=gross_pay,
        tax_withholding=tax_withholding,
        net_pay=to_cents(gross_pay - tax_withholding),
    )
