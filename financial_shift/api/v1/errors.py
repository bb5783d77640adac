"""Mapping of domain errors to HTTP responses"""

import logging
import time
from typing import Any, Callable, TypeVar

from fastapi import HTTPException

from financial_shift.domain.exceptions import (
    CalculationError,
    EntityAPIError,
    RequestQueueClearedError,
    UnknownEntityError,
)
from financial_shift.infrastructure.observability.logging import log_calculation
from financial_shift.infrastructure.observability.metrics import record_calculation

T = TypeVar("T")


def run_calculation(operation: str, request_id: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Run a pure calculation, logging and counting the outcome.

    CalculationError (invalid input, unreachable payoff) becomes 422;
    anything else is logged and becomes 500.
    """
    start_time = time.time()
    try:
        result = fn(*args, **kwargs)

    except CalculationError as e:
        record_calculation(operation, "invalid")
        logging.warning(
            f"Calculation rejected: {e}",
            extra={"request_id": request_id, "operation": operation, "error_type": type(e).__name__},
        )
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        record_calculation(operation, "error")
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id, "operation": operation})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_calculation(operation, "ok")
    log_calculation(request_id, operation, (time.time() - start_time) * 1000)
    return result


def entity_http_error(e: Exception, request_id: str) -> HTTPException:
    """
    Unknown entity -> 404; terminal backend errors keep their status;
    retryable failures that ran out of retries -> 503.
    """
    if isinstance(e, UnknownEntityError):
        return HTTPException(status_code=404, detail=str(e))

    if isinstance(e, EntityAPIError):
        if e.retryable:
            logging.error(f"Entity API unavailable: {e}", extra={"request_id": request_id, "status": e.status})
            return HTTPException(status_code=503, detail="Entity service unavailable")
        logging.warning(f"Entity API rejected request: {e}", extra={"request_id": request_id, "status": e.status})
        return HTTPException(status_code=e.status, detail=str(e))

    if isinstance(e, RequestQueueClearedError):
        return HTTPException(status_code=503, detail=str(e))

    logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")
