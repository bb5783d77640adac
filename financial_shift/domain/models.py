"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, Optional


# Shifts and pay rules


@dataclass
class DifferentialConditions:
    """When a pay differential applies; empty fields mean no restriction"""

    start_time: Optional[time] = None
    end_time: Optional[time] = None
    days_of_week: List[str] = field(default_factory=list)  # "Sun".."Sat"

    @property
    def is_empty(self) -> bool:
        return self.start_time is None and self.end_time is None and not self.days_of_week


@dataclass
class PayDifferential:
    """Conditional premium layered on the base hourly rate"""

    name: str
    amount: float
    rate_type: str = "flat_amount"  # "flat_amount" ($/hr) or "multiplier" (x base)
    type: str = "custom"
    conditions: DifferentialConditions = field(default_factory=DifferentialConditions)
    is_stackable: bool = True


@dataclass
class MealBreakRule:
    """Unpaid break deducted from the clock span of long shifts"""

    is_auto_deducted: bool = True
    break_duration_minutes: int = 30
    unpaid_break_threshold_hours: float = 0.0


@dataclass
class ShiftRule:
    """Pay rule for a job: base rate, overtime and differentials"""

    base_hourly_rate: float
    overtime_threshold: float = 40.0  # Weekly hours
    overtime_multiplier: float = 1.5
    daily_overtime_threshold: Optional[float] = None
    double_time_threshold: Optional[float] = None
    double_time_multiplier: float = 2.0
    differentials: List[PayDifferential] = field(default_factory=list)
    meal_break: Optional[MealBreakRule] = None


@dataclass
class Shift:
    """A single worked shift"""

    start_datetime: datetime
    end_datetime: datetime
    hours_worked: Optional[float] = None
    differentials: List[str] = field(default_factory=list)  # Tagged differential names/types


@dataclass
class AppliedDifferential:
    """Differential that contributed to a shift's pay"""

    name: str
    rate_type: str
    rate: float
    hours: float
    amount: float


@dataclass
class PayBreakdown:
    """Output of shift pay calculation"""

    regular_hours: float
    overtime_hours: float
    double_time_hours: float
    base_pay: float
    overtime_pay: float
    differential_pay: float
    differentials_applied: List[AppliedDifferential]
    gross_pay: float
    tax_withholding: float
    net_pay: float


# Debts


@dataclass
class DebtAccount:
    """Liability input for payoff projections"""

    name: str
    balance: float
    apr: float  # Annual percentage rate, e.g. 24.0 for 24%
    minimum_payment: float


@dataclass
class DebtPayoffSchedule:
    """Per-debt summary of a payoff plan"""

    name: str
    starting_balance: float
    apr: float
    minimum_payment: float
    payoff_month: int
    interest_paid: float
    total_paid: float
    payoff_date: date


@dataclass
class LedgerEntry:
    """One debt's activity in one simulated month"""

    month: int
    name: str
    starting_balance: float
    interest: float
    payment: float
    ending_balance: float


@dataclass
class PayoffResult:
    """Output of debt payoff projection"""

    strategy: str
    schedule: List[DebtPayoffSchedule]
    ledger: List[LedgerEntry]
    total_months: int
    total_interest: float
    debt_free_date: date
    minimum_only_interest: Optional[float]
    strategy_savings: Optional[float]


@dataclass
class StrategyComparison:
    """Avalanche vs snowball on the same debts"""

    avalanche: PayoffResult
    snowball: PayoffResult
    recommended: str
    interest_difference: float
    months_difference: int


# Taxes


@dataclass
class TaxBracket:
    """Progressive bracket; max=None means no upper bound"""

    min: float
    max: Optional[float]
    rate: float  # Decimal, e.g. 0.22


@dataclass
class TaxConfig:
    """Federal bracket table for one filing status and year"""

    year: int
    filing_status: str
    brackets: List[TaxBracket]
    standard_deduction: float = 0.0


@dataclass
class StateTaxConfig:
    """State income tax, flat or bracketed"""

    state_code: str
    year: int
    tax_rate: float = 0.0
    has_brackets: bool = False
    brackets: List[TaxBracket] = field(default_factory=list)


@dataclass
class FicaConfig:
    """Payroll tax parameters (employee share)"""

    social_security_rate: float = 0.062
    social_security_wage_base: float = 160_200.0
    medicare_rate: float = 0.0145
    additional_medicare_rate: float = 0.009
    additional_medicare_threshold: float = 200_000.0


@dataclass
class TaxDetails:
    """Output of tax burden calculation; rates are percentages"""

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


@dataclass
class Transaction:
    """Income or expense record"""

    amount: float
    type: str  # "income" or "expense"
    category: str
    date: date


@dataclass
class Budget:
    """Monthly spending limit for a category"""

    category: str
    monthly_limit: float
    month: int
    year: int


@dataclass
class BudgetVariance:
    """Spending against a budget for its month"""

    category: str
    month: int
    year: int
    monthly_limit: float
    spent: float
    remaining: float
    variance: float
    percentage_used: Optional[float]
    status: str  # "good" | "warning" | "over"


@dataclass
class TransactionTotals:
    income: float
    expenses: float
    net: float


# Goals


@dataclass
class Goal:
    """Savings goal; current_amount may exceed target_amount"""

    target_amount: float
    current_amount: float
    target_date: date
    name: str = ""


@dataclass
class GoalProjection:
    """Output of goal projection"""

    remaining_amount: float
    months_to_completion: Optional[int]
    projected_completion_date: Optional[date]
    required_monthly_contribution: float
    on_track: bool
    completion_percentage: float
