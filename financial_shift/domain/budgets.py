"""Budget variance and transaction aggregation"""

from collections import defaultdict
from typing import Dict, List, Sequence

from financial_shift.domain.exceptions import CalculationValidationError
from financial_shift.domain.models import Budget, BudgetVariance, Transaction, TransactionTotals
from financial_shift.domain.validation import require_non_negative, to_cents

TRANSACTION_TYPES = ("income", "expense")

WARNING_THRESHOLD = 80.0  # Percent of limit


def validate_transactions(transactions: Sequence[Transaction]) -> None:
    for txn in transactions:
        require_non_negative(txn.amount, f"transaction amount ({txn.category})")
        if txn.type not in TRANSACTION_TYPES:
            raise CalculationValidationError(f"Unknown transaction type '{txn.type}'")


def budget_status(spent: float, monthly_limit: float) -> str:
    """good < 80% <= warning <= 100% < over; a zero limit is over once anything is spent"""
    if monthly_limit == 0:
        return "over" if spent > 0 else "good"
    percentage = spent / monthly_limit * 100
    if percentage > 100:
        return "over"
    if percentage >= WARNING_THRESHOLD:
        return "warning"
    return "good"


def calculate_budget_variance(
    budgets: Sequence[Budget],
    transactions: Sequence[Transaction],
) -> List[BudgetVariance]:
    """
    Compare each budget with the expense transactions of its category,
    month and year. Results keep budget order.
    """
    validate_transactions(transactions)

    spending: Dict[tuple, float] = defaultdict(float)
    for txn in transactions:
        if txn.type == "expense":
            spending[(txn.category, txn.date.year, txn.date.month)] += txn.amount

    results = []
    for budget in budgets:
        limit = require_non_negative(budget.monthly_limit, f"{budget.category} monthly_limit")
        if not 1 <= budget.month <= 12:
            raise CalculationValidationError(f"Budget month must be 1-12, got {budget.month}")

        spent = spending.get((budget.category, budget.year, budget.month), 0.0)
        variance = limit - spent
        results.append(
            BudgetVariance(
                category=budget.category,
                month=budget.month,
                year=budget.year,
                monthly_limit=limit,
                spent=to_cents(spent),
                remaining=to_cents(max(0.0, variance)),
                variance=to_cents(variance),
                percentage_used=round(spent / limit * 100, 2) if limit > 0 else None,
                status=budget_status(spent, limit),
            )
        )
    return results


def calculate_transaction_totals(transactions: Sequence[Transaction]) -> TransactionTotals:
    validate_transactions(transactions)
    income = sum(t.amount for t in transactions if t.type == "income")
    expenses = sum(t.amount for t in transactions if t.type == "expense")
    return TransactionTotals(
        income=to_cents(income),
        expenses=to_cents(expenses),
        net=to_cents(income - expenses),
    )


def aggregate_by_category(transactions: Sequence[Transaction], type: str = "expense") -> Dict[str, float]:
    """Totals per category for one transaction type, largest first"""
    if type not in TRANSACTION_TYPES:
        raise CalculationValidationError(f"Unknown transaction type '{type}'")
    validate_transactions(transactions)

    totals: Dict[str, float] = defaultdict(float)
    for txn in transactions:
        if txn.type == type:
            totals[txn.category] += txn.amount
    return {category: to_cents(amount) for category, amount in sorted(totals.items(), key=lambda kv: -kv[1])}
