"""Invoice API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from billing_engine.api.dependencies import DbSession, TenantId
from billing_engine.api.schemas import (
    ErrorResponse,
    InvoiceListResponse,
    InvoiceResponse,
    ManualInvoiceCreate,
    MonthlyInvoiceCreate,
    QrPayloadResponse,
    StatusUpdateRequest,
)
from billing_engine.calculators.qr_payload import CompliancePayloadEncoder, QrTag
from billing_engine.models import Invoice
from billing_engine.services.invoice_service import InvoiceBuilder

router = APIRouter(prefix="/invoices", tags=["invoices"])


def _to_response(builder: InvoiceBuilder, invoice: Invoice) -> InvoiceResponse:
    return InvoiceResponse.from_invoice(invoice, builder.display_status(invoice).value)


# ============================================================================
# Invoice creation
# ============================================================================


@router.post(
    "/generate-monthly",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def generate_monthly_invoice(
    db: DbSession,
    tenant_id: TenantId,
    payload: MonthlyInvoiceCreate,
) -> InvoiceResponse:
    """Generate the invoice for a month from the tenant's timesheets.

    Idempotent per (tenant, year, month): a second call returns 409 with
    the existing invoice id.
    """
    builder = InvoiceBuilder(db)
    invoice = await builder.generate_monthly(
        tenant_id,
        payload.year,
        payload.month,
        payload.customer.to_details(),
    )
    await db.commit()
    return _to_response(builder, invoice)


@router.post(
    "",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_manual_invoice(
    db: DbSession,
    tenant_id: TenantId,
    payload: ManualInvoiceCreate,
) -> InvoiceResponse:
    """Create an invoice from explicit items."""
    builder = InvoiceBuilder(db)
    invoice = await builder.create_manual(
        tenant_id,
        payload.customer.to_details(),
        [item.to_input() for item in payload.items],
        issue_date=payload.issue_date,
        due_date=payload.due_date,
    )
    await db.commit()
    return _to_response(builder, invoice)


# ============================================================================
# Reads
# ============================================================================


@router.get(
    "",
    response_model=InvoiceListResponse,
    responses={422: {"model": ErrorResponse}},
)
async def list_invoices(
    db: DbSession,
    tenant_id: TenantId,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    search: str | None = None,
) -> InvoiceListResponse:
    """List invoices for a tenant with optional filters."""
    builder = InvoiceBuilder(db)
    invoices, total = await builder.list_invoices(
        tenant_id,
        status=status_filter,
        search=search,
        page=page,
        page_size=page_size,
    )
    return InvoiceListResponse(
        items=[_to_response(builder, invoice) for invoice in invoices],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_invoice(
    db: DbSession,
    tenant_id: TenantId,
    invoice_id: Annotated[UUID, Path()],
) -> InvoiceResponse:
    """Get a specific invoice by ID."""
    builder = InvoiceBuilder(db)
    invoice = await builder.get_invoice(tenant_id, invoice_id)
    return _to_response(builder, invoice)


@router.get(
    "/{invoice_id}/qr",
    response_model=QrPayloadResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_invoice_qr(
    db: DbSession,
    tenant_id: TenantId,
    invoice_id: Annotated[UUID, Path()],
) -> QrPayloadResponse:
    """Return the stored compliance QR payload with its decoded fields."""
    invoice = await InvoiceBuilder(db).get_invoice(tenant_id, invoice_id)
    decoded = CompliancePayloadEncoder.decode(invoice.qr_payload)
    return QrPayloadResponse(
        invoice_id=invoice.invoice_id,
        payload=invoice.qr_payload,
        fields={QrTag(tag).name.lower(): value for tag, value in decoded.items()},
    )


# ============================================================================
# Lifecycle
# ============================================================================


@router.patch(
    "/{invoice_id}/status",
    response_model=InvoiceResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def update_invoice_status(
    db: DbSession,
    tenant_id: TenantId,
    invoice_id: Annotated[UUID, Path()],
    payload: StatusUpdateRequest,
) -> InvoiceResponse:
    """Move an invoice to a new status."""
    builder = InvoiceBuilder(db)
    invoice = await builder.transition_status(
        tenant_id,
        invoice_id,
        payload.status,
        paid_date=payload.paid_date,
        payment_method=payload.payment_method,
    )
    await db.commit()
    return _to_response(builder, invoice)


@router.delete(
    "/{invoice_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_invoice(
    db: DbSession,
    tenant_id: TenantId,
    invoice_id: Annotated[UUID, Path()],
) -> Response:
    """Delete a DRAFT invoice."""
    await InvoiceBuilder(db).delete_invoice(tenant_id, invoice_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
