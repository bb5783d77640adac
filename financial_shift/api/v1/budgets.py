"""Budget variance and transaction totals"""

from typing import List

from fastapi import APIRouter, Depends

from financial_shift.api.dependencies import get_request_id
from financial_shift.api.v1.errors import run_calculation
from financial_shift.api.v1.schemas import (
    BudgetVarianceRequest,
    BudgetVarianceResponse,
    TransactionTotalsRequest,
    TransactionTotalsResponse,
)
from financial_shift.domain.budgets import (
    aggregate_by_category,
    calculate_budget_variance,
    calculate_transaction_totals,
)

router = APIRouter()


@router.post("/budgets/variance", response_model=List[BudgetVarianceResponse])
async def budget_variance(request_body: BudgetVarianceRequest, request_id: str = Depends(get_request_id)):
    variances = run_calculation(
        "budget_variance",
        request_id,
        calculate_budget_variance,
        [b.to_domain() for b in request_body.budgets],
        [t.to_domain() for t in request_body.transactions],
    )
    return [BudgetVarianceResponse.model_validate(v) for v in variances]


@router.post("/transactions/totals", response_model=TransactionTotalsResponse)
async def transaction_totals(request_body: TransactionTotalsRequest, request_id: str = Depends(get_request_id)):
    """Income, expenses and net, with per-category breakdowns"""
    transactions = [t.to_domain() for t in request_body.transactions]

    def summarize():
        totals = calculate_transaction_totals(transactions)
        return TransactionTotalsResponse(
            income=totals.income,
            expenses=totals.expenses,
            net=totals.net,
            expenses_by_category=aggregate_by_category(transactions, "expense"),
            income_by_category=aggregate_by_category(transactions, "income"),
        )

    return run_calculation("transaction_totals", request_id, summarize)
