"""Unit tests for budget variance and transaction aggregation"""

import pytest
from datetime import date
from financial_shift.domain.budgets import (
    aggregate_by_category,
    budget_status,
    calculate_budget_variance,
    calculate_transaction_totals,
)
from financial_shift.domain.exceptions import CalculationValidationError
from financial_shift.domain.models import Budget, Transaction


@pytest.fixture
def groceries_budget() -> Budget:
    return Budget(category="groceries", monthly_limit=500.0, month=3, year=2024)


def expense(amount: float, category: str = "groceries", day: date = date(2024, 3, 10)) -> Transaction:
    return Transaction(amount=amount, type="expense", category=category, date=day)


def test_budget_without_transactions_is_good(groceries_budget):
    """Test empty month: nothing spent, full limit remaining"""
    [variance] = calculate_budget_variance([groceries_budget], [])

    assert variance.spent == 0.0
    assert variance.remaining == 500.0
    assert variance.percentage_used == 0.0
    assert variance.status == "good"


@pytest.mark.parametrize(
    "spent,status",
    [(399.99, "good"), (400.0, "warning"), (500.0, "warning"), (500.01, "over")],
)
def test_status_thresholds(groceries_budget, spent, status):
    """Test good < 80% <= warning <= 100% < over"""
    [variance] = calculate_budget_variance([groceries_budget], [expense(spent)])
    assert variance.status == status


def test_only_matching_category_and_month_counts(groceries_budget):
    """Test other categories, months, years and income are ignored"""
    transactions = [
        expense(120.0),
        expense(80.0, day=date(2024, 3, 31)),
        expense(999.0, category="rent"),
        expense(999.0, day=date(2024, 4, 1)),
        expense(999.0, day=date(2023, 3, 10)),
        Transaction(amount=3_000.0, type="income", category="groceries", date=date(2024, 3, 1)),
    ]
    [variance] = calculate_budget_variance([groceries_budget], transactions)

    assert variance.spent == 200.0
    assert variance.variance == 300.0
    assert variance.percentage_used == 40.0


def test_overspend_has_negative_variance(groceries_budget):
    """Test remaining floors at zero while variance goes negative"""
    [variance] = calculate_budget_variance([groceries_budget], [expense(650.0)])

    assert variance.remaining == 0.0
    assert variance.variance == -150.0
    assert variance.status == "over"


def test_zero_limit_budget():
    """Test zero limit has no percentage and is over once anything is spent"""
    budget = Budget(category="fun", monthly_limit=0.0, month=3, year=2024)

    [untouched] = calculate_budget_variance([budget], [])
    [spent] = calculate_budget_variance([budget], [expense(1.0, category="fun")])

    assert untouched.percentage_used is None
    assert untouched.status == "good"
    assert spent.status == "over"
    assert budget_status(0.0, 0.0) == "good"


def test_transaction_totals():
    """Test income, expenses and net"""
    transactions = [
        Transaction(amount=2_500.0, type="income", category="paycheck", date=date(2024, 3, 1)),
        expense(400.25),
        expense(1_200.0, category="rent"),
    ]
    totals = calculate_transaction_totals(transactions)

    assert totals.income == 2_500.0
    assert totals.expenses == 1_600.25
    assert totals.net == 899.75


def test_aggregate_by_category_sorted_largest_first():
    """Test category totals for one transaction type"""
    transactions = [expense(50.0), expense(1_200.0, category="rent"), expense(25.0), expense(10.0, category="fun")]
    totals = aggregate_by_category(transactions)

    assert list(totals) == ["rent", "groceries", "fun"]
    assert totals["groceries"] == 75.0


def test_invalid_transactions_rejected(groceries_budget):
    """Test negative amounts and unknown types"""
    with pytest.raises(CalculationValidationError):
        calculate_budget_variance([groceries_budget], [expense(-5.0)])
    with pytest.raises(CalculationValidationError):
        calculate_transaction_totals([Transaction(amount=5.0, type="refund", category="x", date=date(2024, 3, 1))])
    with pytest.raises(CalculationValidationError):
        aggregate_by_category([], type="transfer")
