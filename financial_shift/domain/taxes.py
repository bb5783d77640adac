"""Tax burden estimation - progressive federal brackets, FICA and state tax"""

from typing import Dict, List, Optional

from financial_shift.domain.exceptions import CalculationValidationError
from financial_shift.domain.models import (
    FicaConfig,
    StateTaxConfig,
    TaxBracket,
    TaxConfig,
    TaxDetails,
)
from financial_shift.domain.validation import require_non_negative, to_cents

FILING_STATUSES = ("single", "married_joint", "married_separate", "head_of_household")

DEFAULT_TAX_YEAR = 2023

_FEDERAL_BRACKETS: Dict[str, List[tuple]] = {
    "single": [
        (0, 11_000, 0.10),
        (11_000, 44_725, 0.12),
        (44_725, 95_375, 0.22),
        (95_375, 182_050, 0.24),
        (182_050, 231_250, 0.32),
        (231_250, 578_125, 0.35),
        (578_125, None, 0.37),
    ],
    "married_joint": [
        (0, 22_000, 0.10),
        (22_000, 89_050, 0.12),
        (89_050, 190_750, 0.22),
        (190_750, 364_200, 0.24),
        (364_200, 462_500, 0.32),
        (462_500, 693_750, 0.35),
        (693_750, None, 0.37),
    ],
    "married_separate": [
        (0, 11_000, 0.10),
        (11_000, 44_525, 0.12),
        (44_525, 95_375, 0.22),
        (95_375, 182_100, 0.24),
        (182_100, 231_250, 0.32),
        (231_250, 346_875, 0.35),
        (346_875, None, 0.37),
    ],
    "head_of_household": [
        (0, 15_700, 0.10),
        (15_700, 59_850, 0.12),
        (59_850, 95_350, 0.22),
        (95_350, 182_100, 0.24),
        (182_100, 231_250, 0.32),
        (231_250, 578_100, 0.35),
        (578_100, None, 0.37),
    ],
}

_STANDARD_DEDUCTIONS = {
    "single": 13_850,
    "married_joint": 27_700,
    "married_separate": 13_850,
    "head_of_household": 20_800,
}

# Additional Medicare tax kicks in at a status-specific wage threshold
_ADDITIONAL_MEDICARE_THRESHOLDS = {
    "single": 200_000,
    "married_joint": 250_000,
    "married_separate": 125_000,
    "head_of_household": 200_000,
}


def _require_filing_status(filing_status: str) -> None:
    if filing_status not in FILING_STATUSES:
        raise CalculationValidationError(
            f"Unknown filing status '{filing_status}', expected one of {FILING_STATUSES}"
        )


def default_tax_config(filing_status: str = "single") -> TaxConfig:
    """Built-in federal bracket table for a filing status"""
    _require_filing_status(filing_status)
    return TaxConfig(
        year=DEFAULT_TAX_YEAR,
        filing_status=filing_status,
        brackets=[TaxBracket(min=lo, max=hi, rate=rate) for lo, hi, rate in _FEDERAL_BRACKETS[filing_status]],
        standard_deduction=_STANDARD_DEDUCTIONS[filing_status],
    )


def default_fica_config(filing_status: str = "single") -> FicaConfig:
    _require_filing_status(filing_status)
    return FicaConfig(additional_medicare_threshold=_ADDITIONAL_MEDICARE_THRESHOLDS[filing_status])


def validate_brackets(brackets: List[TaxBracket]) -> None:
    """
    Brackets must start at 0, be contiguous and ascending with non-decreasing
    rates, and end with an unbounded bracket.
    """
    if not brackets:
        raise CalculationValidationError("Bracket table is empty")
    if brackets[0].min != 0:
        raise CalculationValidationError("First bracket must start at 0")

    for current, following in zip(brackets, brackets[1:]):
        if current.max is None:
            raise CalculationValidationError("Only the last bracket may be unbounded")
        if current.max != following.min:
            raise CalculationValidationError(
                f"Brackets are not contiguous: {current.max} is followed by {following.min}"
            )
        if following.rate < current.rate:
            raise CalculationValidationError(
                f"Bracket rates must not decrease: {current.rate} is followed by {following.rate}"
            )

    for bracket in brackets:
        require_non_negative(bracket.rate, "bracket rate")
        if bracket.max is not None and bracket.max <= bracket.min:
            raise CalculationValidationError(f"Bracket {bracket.min}-{bracket.max} is empty or inverted")

    if brackets[-1].max is not None:
        raise CalculationValidationError("Last bracket must be unbounded (max=None)")


def bracket_tax(amount: float, brackets: List[TaxBracket]) -> float:
    """Progressive tax: sum of (min(amount, max) - min) * rate over reached brackets"""
    tax = 0.0
    for bracket in brackets:
        if amount <= bracket.min:
            break
        upper = amount if bracket.max is None else min(amount, bracket.max)
        tax += (upper - bracket.min) * bracket.rate
    return tax


def marginal_bracket_rate(amount: float, brackets: List[TaxBracket]) -> float:
    """Rate of the bracket the next dollar above `amount` falls in"""
    rate = brackets[0].rate
    for bracket in brackets:
        if amount >= bracket.min:
            rate = bracket.rate
    return rate


def state_tax(income: float, state_config: Optional[StateTaxConfig]) -> float:
    if state_config is None:
        return 0.0
    if state_config.has_brackets:
        validate_brackets(state_config.brackets)
        return bracket_tax(income, state_config.brackets)
    return income * require_non_negative(state_config.tax_rate, "state tax_rate")


def fica_tax(income: float, fica: FicaConfig) -> tuple[float, float]:
    """(social_security, medicare) employee share"""
    social_security = min(income, fica.social_security_wage_base) * fica.social_security_rate
    medicare = income * fica.medicare_rate
    if income > fica.additional_medicare_threshold:
        medicare += (income - fica.additional_medicare_threshold) * fica.additional_medicare_rate
    return social_security, medicare


def compute_tax_burden(
    income: float,
    filing_status: str = "single",
    tax_config: Optional[TaxConfig] = None,
    state_config: Optional[StateTaxConfig] = None,
    fica: Optional[FicaConfig] = None,
) -> TaxDetails:
    """
    Estimate annual tax burden.

    Federal tax applies the bracket table after the standard deduction
    (taxable income never drops below zero). FICA and state tax are charged
    on gross income.

    Rates in the result are percentages:
    - marginal_rate: federal bracket rate at the taxable income
    - effective_rate: (federal + state) / income; non-decreasing in income
    - all_in_effective_rate: total_tax / income, FICA included
    """
    income = require_non_negative(income, "income")
    _require_filing_status(filing_status)

    tax_config = tax_config or default_tax_config(filing_status)
    if tax_config.filing_status != filing_status:
        raise CalculationValidationError(
            f"Tax config is for '{tax_config.filing_status}', not '{filing_status}'"
        )
    validate_brackets(tax_config.brackets)
    deduction = require_non_negative(tax_config.standard_deduction, "standard_deduction")
    fica = fica or default_fica_config(filing_status)

    taxable_income = max(0.0, income - deduction)
    federal = bracket_tax(taxable_income, tax_config.brackets)
    state = state_tax(income, state_config)
    social_security, medicare = fica_tax(income, fica)
    total = federal + state + social_security + medicare

    return TaxDetails(
        gross_income=to_cents(income),
        taxable_income=to_cents(taxable_income),
        federal=to_cents(federal),
        state=to_cents(state),
        social_security=to_cents(social_security),
        medicare=to_cents(medicare),
        total_tax=to_cents(total),
        marginal_rate=round(marginal_bracket_rate(taxable_income, tax_config.brackets) * 100, 2),
        effective_rate=round((federal + state) / income * 100, 4) if income > 0 else 0.0,
        all_in_effective_rate=round(total / income * 100, 4) if income > 0 else 0.0,
    )
