"""Debt payoff endpoints - avalanche/snowball projections"""

import math

from fastapi import APIRouter, Depends

from financial_shift.api.dependencies import get_request_id
from financial_shift.api.v1.errors import run_calculation
from financial_shift.api.v1.schemas import (
    DebtCompareRequest,
    DebtPayoffRequest,
    EstimateMonthsRequest,
    EstimateMonthsResponse,
    PayoffResultResponse,
    StrategyComparisonResponse,
)
from financial_shift.config import settings
from financial_shift.domain.debt_payoff import calculate_debt_payoff, compare_strategies, estimate_months

router = APIRouter()


@router.post("/debts/payoff", response_model=PayoffResultResponse)
async def debt_payoff(request_body: DebtPayoffRequest, request_id: str = Depends(get_request_id)):
    """
    Month-by-month payoff plan.

    Returns 422 when the payments can never retire the debts or the plan
    would run past the configured month cap.
    """
    result = run_calculation(
        "debt_payoff",
        request_id,
        calculate_debt_payoff,
        [d.to_domain() for d in request_body.debts],
        request_body.strategy,
        extra_payment=request_body.extra_payment,
        start_date=request_body.start_date,
        max_months=settings.payoff_max_months,
    )
    return PayoffResultResponse.model_validate(result)


@router.post("/debts/compare", response_model=StrategyComparisonResponse)
async def debt_compare(request_body: DebtCompareRequest, request_id: str = Depends(get_request_id)):
    comparison = run_calculation(
        "debt_compare",
        request_id,
        compare_strategies,
        [d.to_domain() for d in request_body.debts],
        extra_payment=request_body.extra_payment,
        start_date=request_body.start_date,
        max_months=settings.payoff_max_months,
    )
    return StrategyComparisonResponse.model_validate(comparison)


@router.post("/debts/estimate", response_model=EstimateMonthsResponse)
async def debt_estimate(request_body: EstimateMonthsRequest, request_id: str = Depends(get_request_id)):
    """Closed-form months to pay off a single balance at a fixed payment"""
    months = run_calculation(
        "debt_estimate",
        request_id,
        estimate_months,
        request_body.balance,
        request_body.apr,
        request_body.payment,
    )
    return EstimateMonthsResponse(months=round(months, 4), whole_months=math.ceil(months))
