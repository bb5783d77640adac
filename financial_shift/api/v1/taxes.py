"""POST /v1/taxes/estimate - Annual tax burden"""

from fastapi import APIRouter, Depends

from financial_shift.api.dependencies import get_request_id
from financial_shift.api.v1.errors import run_calculation
from financial_shift.api.v1.schemas import TaxDetailsResponse, TaxEstimateRequest
from financial_shift.domain.taxes import compute_tax_burden

router = APIRouter()


@router.post("/taxes/estimate", response_model=TaxDetailsResponse)
async def tax_estimate(request_body: TaxEstimateRequest, request_id: str = Depends(get_request_id)):
    """
    Federal, state and FICA tax for an annual income.

    Without a tax_config the built-in brackets for the filing status apply.
    """
    details = run_calculation(
        "tax_estimate",
        request_id,
        compute_tax_burden,
        request_body.income,
        request_body.filing_status,
        tax_config=request_body.tax_config.to_domain() if request_body.tax_config else None,
        state_config=request_body.state_config.to_domain() if request_body.state_config else None,
    )
    return TaxDetailsResponse.model_validate(details)
