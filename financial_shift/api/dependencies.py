"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from financial_shift.infrastructure.optimization.entities import RequestOptimizer


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_optimizer(request: Request) -> RequestOptimizer:
    """Provide the application's shared request optimizer"""
    return request.app.state.optimizer
