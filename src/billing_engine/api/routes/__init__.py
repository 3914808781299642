"""API routes."""

from billing_engine.api.routes.health import router as health_router
from billing_engine.api.routes.invoices import router as invoices_router
from billing_engine.api.routes.reports import router as reports_router

__all__ = ["health_router", "invoices_router", "reports_router"]
