"""Domain-specific exceptions"""

from enum import Enum


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class CalculationError(DomainException):
    """A financial calculation could not produce a meaningful result"""

    pass


class CalculationValidationError(CalculationError):
    """Input amounts, rates or dates are invalid"""

    pass


class PayoffProjectionError(CalculationError):
    """Debt payoff schedule cannot be completed"""

    pass


class NonConvergentPayoffError(PayoffProjectionError):
    """Payments never cover accruing interest"""

    pass


class PayoffOverflowError(PayoffProjectionError):
    """Payoff simulation exceeded its month cap"""

    def __init__(self, message: str, max_months: int):
        super().__init__(message)
        self.max_months = max_months


class ErrorClass(str, Enum):
    """Retry classification of an entity API failure"""

    RETRYABLE = "retryable"
    TERMINAL = "terminal"


def classify_status(status: int | None) -> ErrorClass:
    """No status (transport failure), 429 and 5xx are retryable; the rest is terminal"""
    if status is None or status == 429 or status >= 500:
        return ErrorClass.RETRYABLE
    return ErrorClass.TERMINAL


class EntityAPIError(DomainException):
    """Entity backend returned an error or is unavailable"""

    def __init__(self, message: str, status: int | None = None, retry_after: float | None = None):
        super().__init__(message)
        self.status = status
        self.retry_after = retry_after

    @property
    def error_class(self) -> ErrorClass:
        return classify_status(self.status)

    @property
    def retryable(self) -> bool:
        return self.error_class is ErrorClass.RETRYABLE


class UnknownEntityError(DomainException):
    """Entity name is not part of the catalog"""

    pass


class RequestQueueClearedError(DomainException):
    """Queued request was discarded by a rate limiter reset"""

    pass


class BatchResultMismatchError(DomainException):
    """Batch processor returned a different number of results than items"""

    pass
