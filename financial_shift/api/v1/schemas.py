"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime, time
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from financial_shift.config import settings
from financial_shift.domain import models
from financial_shift.utils.date_utils import WEEKDAY_ABBREVIATIONS


class RequestModel(BaseModel):
    """Base for request bodies: rejects NaN/inf amounts"""

    model_config = ConfigDict(allow_inf_nan=False)


class ResponseModel(BaseModel):
    """Base for responses built from domain dataclasses"""

    model_config = ConfigDict(from_attributes=True)


# Shift pay


class DifferentialConditionsSchema(RequestModel):
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    days_of_week: List[str] = Field(default_factory=list)

    @field_validator("days_of_week")
    @classmethod
    def known_weekdays(cls, days: List[str]) -> List[str]:
        unknown = [d for d in days if d not in WEEKDAY_ABBREVIATIONS]
        if unknown:
            raise ValueError(f"Unknown weekday(s) {unknown}, expected {list(WEEKDAY_ABBREVIATIONS)}")
        return days


class PayDifferentialSchema(RequestModel):
    name: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)
    rate_type: Literal["flat_amount", "multiplier"] = "flat_amount"
    type: str = "custom"
    conditions: DifferentialConditionsSchema = Field(default_factory=DifferentialConditionsSchema)
    is_stackable: bool = True

    def to_domain(self) -> models.PayDifferential:
        return models.PayDifferential(
            name=self.name,
            amount=self.amount,
            rate_type=self.rate_type,
            type=self.type,
            conditions=models.DifferentialConditions(**self.conditions.model_dump()),
            is_stackable=self.is_stackable,
        )


class MealBreakSchema(RequestModel):
    is_auto_deducted: bool = True
    break_duration_minutes: int = Field(30, ge=0)
    unpaid_break_threshold_hours: float = Field(0.0, ge=0)


class ShiftRuleSchema(RequestModel):
    base_hourly_rate: float = Field(..., ge=0)
    overtime_threshold: float = Field(40.0, ge=0)
    overtime_multiplier: float = Field(1.5, ge=1)
    daily_overtime_threshold: Optional[float] = Field(None, ge=0)
    double_time_threshold: Optional[float] = Field(None, ge=0)
    double_time_multiplier: float = Field(2.0, ge=1)
    differentials: List[PayDifferentialSchema] = Field(default_factory=list)
    meal_break: Optional[MealBreakSchema] = None

    def to_domain(self) -> models.ShiftRule:
        return models.ShiftRule(
            base_hourly_rate=self.base_hourly_rate,
            overtime_threshold=self.overtime_threshold,
            overtime_multiplier=self.overtime_multiplier,
            daily_overtime_threshold=self.daily_overtime_threshold,
            double_time_threshold=self.double_time_threshold,
            double_time_multiplier=self.double_time_multiplier,
            differentials=[d.to_domain() for d in self.differentials],
            meal_break=models.MealBreakRule(**self.meal_break.model_dump()) if self.meal_break else None,
        )


class ShiftSchema(RequestModel):
    start_datetime: datetime
    end_datetime: datetime
    hours_worked: Optional[float] = Field(None, ge=0)
    differentials: List[str] = Field(default_factory=list)

    def to_domain(self) -> models.Shift:
        return models.Shift(**self.model_dump())


class ShiftPayRequest(RequestModel):
    """Request body for POST /v1/shifts/pay"""

    shift: ShiftSchema
    rule: ShiftRuleSchema
    withholding_rate: float = Field(settings.default_withholding_rate, ge=0, le=1)
    prior_week_hours: float = Field(0.0, ge=0)


class AppliedDifferentialResponse(ResponseModel):
    name: str
    rate_type: str
    rate: float
    hours: float
    amount: float


class PayBreakdownResponse(ResponseModel):
    """Response for POST /v1/shifts/pay"""

    regular_hours: float
    overtime_hours: float
    double_time_hours: float
    base_pay: float
    overtime_pay: float
    differential_pay: float
    differentials_applied: List[AppliedDifferentialResponse]
    gross_pay: float
    tax_withholding: float
    net_pay: float


# Debts


class DebtAccountSchema(RequestModel):
    name: str = Field(..., min_length=1)
    balance: float = Field(..., ge=0)
    apr: float = Field(..., ge=0, description="Annual percentage rate, 24.0 for 24%")
    minimum_payment: float = Field(..., ge=0)

    def to_domain(self) -> models.DebtAccount:
        return models.DebtAccount(**self.model_dump())


class DebtPayoffRequest(RequestModel):
    """Request body for POST /v1/debts/payoff"""

    debts: List[DebtAccountSchema] = Field(..., min_length=1)
    strategy: Literal["avalanche", "snowball"] = "avalanche"
    extra_payment: float = Field(0.0, ge=0)
    start_date: Optional[date] = None


class DebtCompareRequest(RequestModel):
    """Request body for POST /v1/debts/compare"""

    debts: List[DebtAccountSchema] = Field(..., min_length=1)
    extra_payment: float = Field(0.0, ge=0)
    start_date: Optional[date] = None


class EstimateMonthsRequest(RequestModel):
    """Request body for POST /v1/debts/estimate"""

    balance: float = Field(..., ge=0)
    apr: float = Field(..., ge=0)
    payment: float = Field(..., ge=0)


class EstimateMonthsResponse(BaseModel):
    months: float
    whole_months: int


class DebtPayoffScheduleResponse(ResponseModel):
    name: str
    starting_balance: float
    apr: float
    minimum_payment: float
    payoff_month: int
    interest_paid: float
    total_paid: float
    payoff_date: date


class LedgerEntryResponse(ResponseModel):
    month: int
    name: str
    starting_balance: float
    interest: float
    payment: float
    ending_balance: float


class PayoffResultResponse(ResponseModel):
    """Response for POST /v1/debts/payoff"""

    strategy: str
    schedule: List[DebtPayoffScheduleResponse]
    ledger: List[LedgerEntryResponse]
    total_months: int
    total_interest: float
    debt_free_date: date
    minimum_only_interest: Optional[float] = None
    strategy_savings: Optional[float] = None


class StrategyComparisonResponse(ResponseModel):
    """Response for POST /v1/debts/compare"""

    avalanche: PayoffResultResponse
    snowball: PayoffResultResponse
    recommended: str
    interest_difference: float
    months_difference: int


# Taxes


class TaxBracketSchema(RequestModel):
    min: float = Field(..., ge=0)
    max: Optional[float] = Field(None, ge=0)
    rate: float = Field(..., ge=0, le=1)


class TaxConfigSchema(RequestModel):
    year: int
    filing_status: str
    brackets: List[TaxBracketSchema] = Field(..., min_length=1)
    standard_deduction: float = Field(0.0, ge=0)

    def to_domain(self) -> models.TaxConfig:
        return models.TaxConfig(
            year=self.year,
            filing_status=self.filing_status,
            brackets=[models.TaxBracket(**b.model_dump()) for b in self.brackets],
            standard_deduction=self.standard_deduction,
        )


class StateTaxConfigSchema(RequestModel):
    state_code: str = Field(..., min_length=2, max_length=2)
    year: int
    tax_rate: float = Field(0.0, ge=0, le=1)
    has_brackets: bool = False
    brackets: List[TaxBracketSchema] = Field(default_factory=list)

    def to_domain(self) -> models.StateTaxConfig:
        return models.StateTaxConfig(
            state_code=self.state_code,
            year=self.year,
            tax_rate=self.tax_rate,
            has_brackets=self.has_brackets,
            brackets=[models.TaxBracket(**b.model_dump()) for b in self.brackets],
        )


class TaxEstimateRequest(RequestModel):
    """Request body for POST /v1/taxes/estimate"""

    income: float = Field(..., ge=0)
    filing_status: Literal["single", "married_joint", "married_separate", "head_of_household"] = "single"
    tax_config: Optional[TaxConfigSchema] = None
    state_config: Optional[StateTaxConfigSchema] = None


class TaxDetailsResponse(ResponseModel):
    """Response for POST /v1/taxes/estimate"""

    gross_income: float
    taxable_income: float
    federal: float
    state: float
    social_security: float
    medicare: float
    total_tax: float
    marginal_rate: float
    effective_rate: float
    all_in_effective_rate: float


# Budgets and transactions


class TransactionSchema(RequestModel):
    amount: float = Field(..., ge=0)
    type: Literal["income", "expense"]
    category: str = Field(..., min_length=1)
    date: date

    def to_domain(self) -> models.Transaction:
        return models.Transaction(**self.model_dump())


class BudgetSchema(RequestModel):
    category: str = Field(..., min_length=1)
    monthly_limit: float = Field(..., ge=0)
    month: int = Field(..., ge=1, le=12)
    year: int

    def to_domain(self) -> models.Budget:
        return models.Budget(**self.model_dump())


class BudgetVarianceRequest(RequestModel):
    """Request body for POST /v1/budgets/variance"""

    budgets: List[BudgetSchema]
    transactions: List[TransactionSchema] = Field(default_factory=list)


class BudgetVarianceResponse(ResponseModel):
    category: str
    month: int
    year: int
    monthly_limit: float
    spent: float
    remaining: float
    variance: float
    percentage_used: Optional[float] = None
    status: Literal["good", "warning", "over"]


class TransactionTotalsRequest(RequestModel):
    """Request body for POST /v1/transactions/totals"""

    transactions: List[TransactionSchema]


class TransactionTotalsResponse(BaseModel):
    income: float
    expenses: float
    net: float
    expenses_by_category: Dict[str, float]
    income_by_category: Dict[str, float]


# Goals


class GoalSchema(RequestModel):
    name: str = ""
    target_amount: float = Field(..., ge=0)
    current_amount: float = Field(0.0, ge=0)
    target_date: date

    def to_domain(self) -> models.Goal:
        return models.Goal(**self.model_dump())


class GoalProjectionRequest(RequestModel):
    """Request body for POST /v1/goals/projection"""

    goal: GoalSchema
    monthly_contribution: float = Field(0.0, ge=0)
    as_of: Optional[date] = None


class GoalProjectionResponse(ResponseModel):
    """Response for POST /v1/goals/projection"""

    remaining_amount: float
    months_to_completion: Optional[int] = None
    projected_completion_date: Optional[date] = None
    required_monthly_contribution: float
    on_track: bool
    completion_percentage: float


# Entities


class InvalidateCacheResponse(BaseModel):
    entity: str
    invalidated: int


class OptimizerStatsResponse(BaseModel):
    rate_limiter: Dict[str, Any]
    deduplicator: Dict[str, Any]
    pending_batches: Dict[str, int]
    timestamp: str
