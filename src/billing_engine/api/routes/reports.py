"""Billing report endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from billing_engine.api.dependencies import DbSession, TenantId
from billing_engine.api.schemas import (
    ClientReportResponse,
    ClientReportRowResponse,
    ErrorResponse,
    LaborReportResponse,
    LaborReportRowResponse,
)
from billing_engine.services.report_service import ReportService

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get(
    "/labor",
    response_model=LaborReportResponse,
    responses={422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def labor_report(
    db: DbSession,
    tenant_id: TenantId,
    start_date: Annotated[date, Query()],
    end_date: Annotated[date, Query()],
    laborer_id: UUID | None = None,
    job_id: UUID | None = None,
) -> LaborReportResponse:
    """Per-entry labor cost at pay rates."""
    report = await ReportService(db).labor_report(
        tenant_id, start_date, end_date, laborer_id=laborer_id, job_id=job_id
    )
    return LaborReportResponse(
        start_date=report.start_date,
        end_date=report.end_date,
        data=[LaborReportRowResponse.model_validate(row) for row in report.rows],
        summary=report.summary,
    )


@router.get(
    "/client",
    response_model=ClientReportResponse,
    responses={422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def client_report(
    db: DbSession,
    tenant_id: TenantId,
    start_date: Annotated[date, Query()],
    end_date: Annotated[date, Query()],
    laborer_id: UUID | None = None,
    job_id: UUID | None = None,
) -> ClientReportResponse:
    """Per-entry client charges at charge rates, with cost and profit."""
    report = await ReportService(db).client_report(
        tenant_id, start_date, end_date, laborer_id=laborer_id, job_id=job_id
    )
    return ClientReportResponse(
        start_date=report.start_date,
        end_date=report.end_date,
        data=[ClientReportRowResponse.model_validate(row) for row in report.rows],
        summary=report.summary,
    )
