"""POST /v1/shifts/pay - Shift pay with overtime and differentials"""

from fastapi import APIRouter, Depends

from financial_shift.api.dependencies import get_request_id
from financial_shift.api.v1.errors import run_calculation
from financial_shift.api.v1.schemas import PayBreakdownResponse, ShiftPayRequest
from financial_shift.domain.shift_pay import calculate_shift_pay

router = APIRouter()


@router.post("/shifts/pay", response_model=PayBreakdownResponse)
async def shift_pay(request_body: ShiftPayRequest, request_id: str = Depends(get_request_id)):
    """
    Gross and net pay for one shift.

    prior_week_hours counts hours already worked this week toward the
    weekly overtime threshold.
    """
    breakdown = run_calculation(
        "shift_pay",
        request_id,
        calculate_shift_pay,
        request_body.shift.to_domain(),
        request_body.rule.to_domain(),
        withholding_rate=request_body.withholding_rate,
        prior_week_hours=request_body.prior_week_hours,
    )
    return PayBreakdownResponse.model_validate(breakdown)
