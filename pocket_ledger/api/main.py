"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from pocket_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from pocket_ledger.api.v1 import cards, investments, months, settings as settings_router, transactions
from pocket_ledger.domain.exceptions import (
    DomainException,
    InsufficientFundsError,
    InsufficientLimitError,
    InvalidAmountError,
    InvalidCardConfigurationError,
    InvalidMonthError,
    NotFoundError,
    RepositoryError,
)
from pocket_ledger.infrastructure.database.session import init_models
from pocket_ledger.infrastructure.observability.logging import setup_logging
from pocket_ledger.config import settings

# Setup structured logging
setup_logging(settings.log_level)

# Most specific first; anything else in the domain taxonomy is a 400
ERROR_STATUS = (
    (NotFoundError, 404),
    (InvalidMonthError, 400),
    (InsufficientLimitError, 422),
    (InsufficientFundsError, 422),
    (InvalidAmountError, 422),
    (InvalidCardConfigurationError, 422),
    (RepositoryError, 503),
)


def status_for(error: DomainException) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 400


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Pocket Ledger",
        description="Personal ledger, credit card cycle and investment yield service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(DomainException)
    async def domain_error_handler(request: Request, exc: DomainException):
        status = status_for(exc)
        request_id = getattr(request.state, "request_id", "unknown")
        if status >= 500:
            logging.error(f"Storage error: {exc}", extra={"request_id": request_id})
            return JSONResponse(status_code=status, content={"detail": "Ledger storage unavailable"})
        logging.warning(f"Rejected request: {exc}", extra={"request_id": request_id, "status": status})
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(months.router, prefix="/v1", tags=["months"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(cards.router, prefix="/v1", tags=["cards"])
    app.include_router(investments.router, prefix="/v1", tags=["investments"])
    app.include_router(settings_router.router, prefix="/v1", tags=["settings"])

    return app


app = create_app()
