"""Debt payoff engine - avalanche/snowball simulation with payment waterfall"""

import math
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

from financial_shift.domain.exceptions import (
    CalculationValidationError,
    NonConvergentPayoffError,
    PayoffOverflowError,
    PayoffProjectionError,
)
from financial_shift.domain.models import (
    DebtAccount,
    DebtPayoffSchedule,
    LedgerEntry,
    PayoffResult,
    StrategyComparison,
)
from financial_shift.domain.validation import require_non_negative, to_cents
from financial_shift.utils.date_utils import add_months

STRATEGIES = ("avalanche", "snowball")
DEFAULT_MAX_MONTHS = 600
BALANCE_EPSILON = 0.005  # Half a cent counts as paid off


@dataclass
class _Simulation:
    months: int = 0
    ledger: List[LedgerEntry] = field(default_factory=list)
    interest_paid: List[float] = field(default_factory=list)
    total_paid: List[float] = field(default_factory=list)
    payoff_month: List[int] = field(default_factory=list)

    @property
    def total_interest(self) -> float:
        return sum(self.interest_paid)


def validate_debts(debts: Sequence[DebtAccount]) -> None:
    for debt in debts:
        require_non_negative(debt.balance, f"{debt.name} balance")
        require_non_negative(debt.apr, f"{debt.name} apr")
        require_non_negative(debt.minimum_payment, f"{debt.name} minimum_payment")


def prioritize(debts: Sequence[DebtAccount], strategy: str) -> List[DebtAccount]:
    """
    Order active debts by payoff priority.

    avalanche: highest APR first; snowball: lowest balance first.
    Sorting is stable, so ties keep input order. Paid-off debts are dropped.
    """
    if strategy not in STRATEGIES:
        raise CalculationValidationError(f"Unknown payoff strategy '{strategy}', expected one of {STRATEGIES}")

    active = [d for d in debts if d.balance > 0]
    if strategy == "avalanche":
        return sorted(active, key=lambda d: -d.apr)
    return sorted(active, key=lambda d: d.balance)


def _simulate(
    ordered: List[DebtAccount],
    extra_payment: float,
    max_months: int,
    rollover: bool = True,
) -> _Simulation:
    """
    Month-by-month simulation.

    Each month: accrue interest on every open balance, pay each minimum
    (capped at the balance), then apply the rolling pool in priority order.
    The pool is the extra payment plus minimums freed by paid-off debts plus
    any minimum left unused this month. With rollover=False every debt only
    ever receives its own minimum (the minimum-only baseline).
    """
    count = len(ordered)
    balances = [d.balance for d in ordered]
    sim = _Simulation(
        interest_paid=[0.0] * count,
        total_paid=[0.0] * count,
        payoff_month=[0] * count,
    )
    monthly_budget = sum(d.minimum_payment for d in ordered) + extra_payment

    while any(b > BALANCE_EPSILON for b in balances):
        if sim.months >= max_months:
            raise PayoffOverflowError(
                f"Debts not paid off within {max_months} months", max_months=max_months
            )
        sim.months += 1
        month = sim.months

        starting = list(balances)
        interest = [0.0] * count
        payments = [0.0] * count

        for i, debt in enumerate(ordered):
            if starting[i] > BALANCE_EPSILON:
                interest[i] = starting[i] * debt.apr / 100 / 12
                balances[i] += interest[i]

        if rollover:
            target = next(i for i in range(count) if starting[i] > BALANCE_EPSILON)
            if monthly_budget <= interest[target]:
                raise NonConvergentPayoffError(
                    f"Monthly payments of {monthly_budget:.2f} never cover the "
                    f"{interest[target]:.2f} monthly interest on '{ordered[target].name}'"
                )
        else:
            for i, debt in enumerate(ordered):
                if starting[i] > BALANCE_EPSILON and debt.minimum_payment <= interest[i]:
                    raise NonConvergentPayoffError(
                        f"Minimum payment on '{debt.name}' never covers its monthly interest"
                    )

        pool = extra_payment if rollover else 0.0
        for i, debt in enumerate(ordered):
            if starting[i] <= BALANCE_EPSILON:
                pool += debt.minimum_payment if rollover else 0.0
                continue
            payment = min(debt.minimum_payment, balances[i])
            payments[i] += payment
            balances[i] -= payment
            if rollover:
                pool += debt.minimum_payment - payment

        if rollover:
            for i in range(count):
                if pool <= 0:
                    break
                if balances[i] > BALANCE_EPSILON:
                    payment = min(pool, balances[i])
                    payments[i] += payment
                    balances[i] -= payment
                    pool -= payment

        for i, debt in enumerate(ordered):
            if starting[i] <= BALANCE_EPSILON:
                continue
            if balances[i] <= BALANCE_EPSILON:
                balances[i] = 0.0
                sim.payoff_month[i] = month
            sim.interest_paid[i] += interest[i]
            sim.total_paid[i] += payments[i]
            sim.ledger.append(
                LedgerEntry(
                    month=month,
                    name=debt.name,
                    starting_balance=to_cents(starting[i]),
                    interest=to_cents(interest[i]),
                    payment=to_cents(payments[i]),
                    ending_balance=to_cents(balances[i]),
                )
            )

    return sim


def calculate_debt_payoff(
    debts: Sequence[DebtAccount],
    strategy: str = "avalanche",
    extra_payment: float = 0.0,
    start_date: Optional[date] = None,
    max_months: int = DEFAULT_MAX_MONTHS,
) -> PayoffResult:
    """
    Project payoff of a set of debts under avalanche or snowball.

    strategy_savings is the interest saved versus paying only minimums with
    no rollover; it is None when the minimum-only plan never pays off.

    Raises:
        CalculationValidationError: On negative/non-finite inputs or unknown strategy
        NonConvergentPayoffError: Total monthly payment never covers the targeted debt's interest
        PayoffOverflowError: Payoff would take longer than max_months
    """
    validate_debts(debts)
    extra_payment = require_non_negative(extra_payment, "extra_payment")
    start_date = start_date or date.today()

    ordered = prioritize(debts, strategy)
    plan = _simulate(ordered, extra_payment, max_months)

    try:
        baseline = _simulate(ordered, 0.0, max_months, rollover=False)
    except PayoffProjectionError:
        minimum_only_interest = None
        strategy_savings = None
    else:
        minimum_only_interest = to_cents(baseline.total_interest)
        strategy_savings = to_cents(baseline.total_interest - plan.total_interest)

    schedule = [
        DebtPayoffSchedule(
            name=debt.name,
            starting_balance=debt.balance,
            apr=debt.apr,
            minimum_payment=debt.minimum_payment,
            payoff_month=plan.payoff_month[i],
            interest_paid=to_cents(plan.interest_paid[i]),
            total_paid=to_cents(plan.total_paid[i]),
            payoff_date=add_months(start_date, plan.payoff_month[i]),
        )
        for i, debt in enumerate(ordered)
    ]

    return PayoffResult(
        strategy=strategy,
        schedule=schedule,
        ledger=plan.ledger,
        total_months=plan.months,
        total_interest=to_cents(plan.total_interest),
        debt_free_date=add_months(start_date, plan.months),
        minimum_only_interest=minimum_only_interest,
        strategy_savings=strategy_savings,
    )


def compare_strategies(
    debts: Sequence[DebtAccount],
    extra_payment: float = 0.0,
    start_date: Optional[date] = None,
    max_months: int = DEFAULT_MAX_MONTHS,
) -> StrategyComparison:
    """Run avalanche and snowball side by side; recommend the cheaper one"""
    avalanche = calculate_debt_payoff(debts, "avalanche", extra_payment, start_date, max_months)
    snowball = calculate_debt_payoff(debts, "snowball", extra_payment, start_date, max_months)
    recommended = "avalanche" if avalanche.total_interest <= snowball.total_interest else "snowball"

    return StrategyComparison(
        avalanche=avalanche,
        snowball=snowball,
        recommended=recommended,
        interest_difference=to_cents(abs(snowball.total_interest - avalanche.total_interest)),
        months_difference=snowball.total_months - avalanche.total_months,
    )


def estimate_months(balance: float, apr: float, payment: float) -> float:
    """
    Closed-form months to pay off one debt at a constant payment.

    n = -ln(1 - r*B/P) / ln(1 + r), r the monthly rate. Callers wanting whole
    months take math.ceil of the result.

    Raises:
        NonConvergentPayoffError: payment <= 0 or payment <= monthly interest
    """
    balance = require_non_negative(balance, "balance")
    apr = require_non_negative(apr, "apr")
    payment = require_non_negative(payment, "payment")

    if balance == 0:
        return 0.0
    if payment == 0:
        raise NonConvergentPayoffError("A zero payment never pays off a positive balance")

    monthly_rate = apr / 100 / 12
    if monthly_rate == 0:
        return balance / payment
    if payment <= monthly_rate * balance:
        raise NonConvergentPayoffError(
            f"Payment {payment:.2f} does not exceed monthly interest {monthly_rate * balance:.2f}"
        )
    return -math.log(1 - monthly_rate * balance / payment) / math.log(1 + monthly_rate)
