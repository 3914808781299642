"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from billing_engine.api.routes import health_router, invoices_router, reports_router
from billing_engine.config import get_settings
from billing_engine.database import dispose_db, init_db
from billing_engine.errors import (
    BillingError,
    ConflictError,
    IntegrityFault,
    InvalidStateError,
    InvalidTransitionError,
    InvoiceAlreadyExistsError,
    NotFoundError,
    ValidationError,
)
from billing_engine.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()
    configure_logging(settings.log_level)
    init_db(settings.database_url)
    logger.info("Billing engine %s starting", settings.engine_version)
    yield
    await dispose_db()


def error_status(exc: BillingError) -> int:
    """HTTP status for a billing error."""
    if isinstance(exc, ValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, InvalidTransitionError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, (ConflictError, InvalidStateError)):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Labor Billing Engine API",
        description="Monthly and manual invoicing for labor contracting",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(BillingError)
    async def billing_exception_handler(
        request: Request, exc: BillingError
    ) -> JSONResponse:
        """Map billing errors onto HTTP responses."""
        status_code = error_status(exc)
        if isinstance(exc, IntegrityFault):
            logger.error("Integrity fault on %s %s: %s", request.method, request.url.path, exc)
        content = {"detail": exc.message, "code": exc.code, "context": exc.context}
        if isinstance(exc, InvoiceAlreadyExistsError):
            content["invoice_id"] = str(exc.invoice_id)
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(invoices_router, prefix="/api/v1")
    app.include_router(reports_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
