"""POST /v1/goals/projection - Savings goal projection"""

from fastapi import APIRouter, Depends

from financial_shift.api.dependencies import get_request_id
from financial_shift.api.v1.errors import run_calculation
from financial_shift.api.v1.schemas import GoalProjectionRequest, GoalProjectionResponse
from financial_shift.domain.goals import calculate_goal_projection

router = APIRouter()


@router.post("/goals/projection", response_model=GoalProjectionResponse)
async def goal_projection(request_body: GoalProjectionRequest, request_id: str = Depends(get_request_id)):
    projection = run_calculation(
        "goal_projection",
        request_id,
        calculate_goal_projection,
        request_body.goal.to_domain(),
        request_body.monthly_contribution,
        as_of=request_body.as_of,
    )
    return GoalProjectionResponse.model_validate(projection)
