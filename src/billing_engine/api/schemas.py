"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from billing_engine.calculators.types import CustomerDetails, ItemInput
from billing_engine.calculators.words import amount_to_words
from billing_engine.services.state_machine import InvoiceStateMachine


# ============================================================================
# Request schemas
# ============================================================================


class CustomerPayload(BaseModel):
    """Bill-to party."""

    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    vat_number: str | None = None

    def to_details(self) -> CustomerDetails:
        return CustomerDetails(
            name=self.name,
            address=self.address,
            city=self.city,
            vat_number=self.vat_number,
        )


class MonthlyInvoiceCreate(BaseModel):
    """Schema for generating a monthly invoice from timesheets."""

    year: int = Field(ge=1, le=9999)
    month: int = Field(ge=1, le=12)
    customer: CustomerPayload


class InvoiceItemCreate(BaseModel):
    """One manual invoice item."""

    description: str = Field(min_length=1)
    quantity: Decimal = Field(gt=0, decimal_places=2)
    unit_price: Decimal = Field(gt=0, decimal_places=4)
    vat_rate: Decimal | None = Field(default=None, ge=0, le=100)

    def to_input(self) -> ItemInput:
        return ItemInput(
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            vat_rate=self.vat_rate,
        )


class ManualInvoiceCreate(BaseModel):
    """Schema for creating an invoice from explicit items."""

    customer: CustomerPayload
    items: list[InvoiceItemCreate] = Field(min_length=1)
    issue_date: datetime | None = None
    due_date: date | None = None


class StatusUpdateRequest(BaseModel):
    """Schema for an invoice status change."""

    status: str
    paid_date: date | None = None
    payment_method: str | None = None


# ============================================================================
# Invoice responses
# ============================================================================


class InvoiceItemResponse(BaseModel):
    """Schema for invoice item response."""

    model_config = ConfigDict(from_attributes=True)

    invoice_item_id: UUID
    position: int
    description: str
    quantity: Decimal
    unit_price: Decimal
    vat_rate: Decimal
    line_total: Decimal
    vat_amount: Decimal
    total_amount: Decimal


class InvoiceResponse(BaseModel):
    """Schema for invoice response.

    `status` is the display status (OVERDUE derived); `stored_status` is
    what is persisted.
    """

    model_config = ConfigDict(from_attributes=True)

    invoice_id: UUID
    tenant_id: UUID
    invoice_number: int
    reference: str
    number_year: int
    number_month: int
    source_year: int | None = None
    source_month: int | None = None
    is_manual: bool
    customer_name: str
    customer_vat: str | None = None
    customer_address: str
    customer_city: str
    issue_date: datetime
    due_date: date
    subtotal: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    total_in_words: str = ""
    status: str
    stored_status: str = ""
    next_statuses: list[str] = []
    paid_date: date | None = None
    payment_method: str | None = None
    qr_payload: str
    items: list[InvoiceItemResponse] = []
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_invoice(cls, invoice: Any, display_status: str) -> "InvoiceResponse":
        resp = cls.model_validate(invoice)
        resp.stored_status = invoice.status
        resp.status = display_status
        resp.next_statuses = [
            str(s) for s in InvoiceStateMachine.get_next_statuses(display_status)
        ]
        resp.total_in_words = amount_to_words(invoice.total_amount)
        return resp


class InvoiceListResponse(BaseModel):
    """Schema for listing invoices."""

    items: list[InvoiceResponse]
    total: int
    page: int
    page_size: int


class QrPayloadResponse(BaseModel):
    """Compliance QR payload and its decoded fields."""

    invoice_id: UUID
    payload: str
    fields: dict[str, str]


# ============================================================================
# Report responses
# ============================================================================


class LaborReportRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    work_date: date
    laborer_name: str
    laborer_id_number: str
    job_name: str
    regular_hours: Decimal
    overtime_hours: Decimal
    overtime_multiplier: Decimal
    total_hours: Decimal
    pay_rate: Decimal
    regular_pay: Decimal
    overtime_pay: Decimal
    total_pay: Decimal
    notes: str


class ClientReportRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    work_date: date
    laborer_name: str
    laborer_id_number: str
    job_name: str
    regular_hours: Decimal
    overtime_hours: Decimal
    overtime_multiplier: Decimal
    total_hours: Decimal
    charge_rate: Decimal
    regular_charge: Decimal
    overtime_charge: Decimal
    total_charge: Decimal
    total_cost: Decimal
    profit: Decimal
    notes: str


class LaborReportResponse(BaseModel):
    report_type: str = "labor"
    start_date: date
    end_date: date
    data: list[LaborReportRowResponse]
    summary: dict[str, Decimal | int]


class ClientReportResponse(BaseModel):
    report_type: str = "client"
    start_date: date
    end_date: date
    data: list[ClientReportRowResponse]
    summary: dict[str, Decimal | int]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
