"""FastAPI application factory"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from financial_shift.api.middleware import RequestIDMiddleware, MetricsMiddleware
from financial_shift.api.v1 import budgets, debts, entities, goals, shifts, taxes
from financial_shift.infrastructure.clients.entities import HttpEntityClient
from financial_shift.infrastructure.optimization.entities import RequestOptimizer
from financial_shift.infrastructure.observability.logging import setup_logging
from financial_shift.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Send any batched writes still waiting when the app stops"""
    yield
    await app.state.optimizer.flush_batches()


def create_app(optimizer: RequestOptimizer | None = None) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Financial Shift",
        description="Shift pay, debt payoff, tax and budget calculations with optimized entity access",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.optimizer = optimizer or RequestOptimizer.from_settings(HttpEntityClient())

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(shifts.router, prefix="/v1", tags=["shifts"])
    app.include_router(debts.router, prefix="/v1", tags=["debts"])
    app.include_router(taxes.router, prefix="/v1", tags=["taxes"])
    app.include_router(budgets.router, prefix="/v1", tags=["budgets"])
    app.include_router(goals.router, prefix="/v1", tags=["goals"])
    app.include_router(entities.router, prefix="/v1", tags=["entities"])

    return app


app = create_app()
