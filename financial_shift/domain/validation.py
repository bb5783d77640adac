"""Input guards shared by the calculation modules"""

import math

from financial_shift.domain.exceptions import CalculationValidationError


def require_finite(value: float, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CalculationValidationError(f"{field_name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise CalculationValidationError(f"{field_name} must be finite, got {value!r}")
    return float(value)


def require_non_negative(value: float, field_name: str) -> float:
    value = require_finite(value, field_name)
    if value < 0:
        raise CalculationValidationError(f"{field_name} cannot be negative, got {value}")
    return value


def require_at_least(value: float, minimum: float, field_name: str) -> float:
    value = require_finite(value, field_name)
    if value < minimum:
        raise CalculationValidationError(f"{field_name} must be at least {minimum}, got {value}")
    return value


def to_cents(amount: float) -> float:
    """Round a dollar amount to currency precision"""
    return round(amount, 2) + 0.0  # folds -0.0 into 0.0
