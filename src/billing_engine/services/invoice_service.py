"""Invoice builder - main orchestrator for invoice operations."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from billing_engine.calculators.aggregator import TimesheetAggregator, month_bounds
from billing_engine.calculators.line_builder import InvoiceLineBuilder
from billing_engine.calculators.qr_payload import CompliancePayloadEncoder
from billing_engine.calculators.types import CustomerDetails, InvoiceLine, ItemInput
from billing_engine.calculators.vat_calculator import VatCalculator
from billing_engine.config import Settings, get_settings
from billing_engine.database import acquire_bucket_lock, bucket_lock_key
from billing_engine.errors import (
    ConflictError,
    EmptyPeriodError,
    InvalidStateError,
    InvoiceAlreadyExistsError,
    InvoiceNotFoundError,
    InvoiceValidationError,
    TenantNotFoundError,
)
from billing_engine.models import Invoice, InvoiceItem, Tenant, utcnow
from billing_engine.services.sequencer import InvoiceNumberSequencer
from billing_engine.services.state_machine import (
    InvoiceStateMachine,
    InvoiceStatus,
    effective_status,
)

logger = logging.getLogger(__name__)


class InvoiceBuilder:
    """Service for creating invoices and driving their lifecycle.

    Operations:
    - generate_monthly: Aggregate a month's timesheets into one invoice
    - create_manual: Invoice caller-supplied items
    - delete_invoice: Remove a DRAFT invoice (its number is not reused)
    - transition_status: Move an invoice through its lifecycle
    - get_invoice / list_invoices: Plain tenant-scoped reads

    Every write runs inside the caller's session transaction. The builder
    flushes but never commits, so the number reservation, the invoice and
    its items commit or roll back together.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.clock = clock or utcnow
        self.aggregator = TimesheetAggregator(session)
        self.sequencer = InvoiceNumberSequencer(session)

    async def generate_monthly(
        self,
        tenant_id: UUID,
        year: int,
        month: int,
        customer: CustomerDetails,
    ) -> Invoice:
        """Generate the invoice for a tenant's calendar month.

        This method:
        1. Validates the period and customer before any side effect
        2. Serializes on the (tenant, year, month) bucket
        3. Refuses if a non-cancelled invoice already covers the period
        4. Aggregates timesheets into lines and applies VAT per line
        5. Reserves the next number and persists a DRAFT invoice with its
           compliance QR payload

        Raises:
            InvoiceValidationError: Bad period or customer.
            InvoiceAlreadyExistsError: Period already invoiced.
            EmptyPeriodError: Nothing to bill in the period.
            RateIntegrityError: Timesheets reference missing rate data.
        """
        month_bounds(year, month)
        self._validate_customer(customer)
        tenant = await self._get_tenant(tenant_id)

        await acquire_bucket_lock(self.session, bucket_lock_key(tenant_id, year, month))

        existing = await self.find_monthly_invoice(tenant_id, year, month)
        if existing is not None:
            logger.info(
                "Monthly invoice for tenant %s period %04d-%02d already exists: %s",
                tenant_id,
                year,
                month,
                existing.invoice_id,
            )
            raise InvoiceAlreadyExistsError(existing.invoice_id, year, month)

        billable = await self.aggregator.aggregate(tenant_id, year, month)
        lines = InvoiceLineBuilder.billable_lines_to_invoice_lines(
            billable, self._vat_rate(tenant)
        )
        if not lines:
            raise EmptyPeriodError(tenant_id, year, month)

        try:
            invoice = await self._persist(
                tenant=tenant,
                customer=customer,
                lines=lines,
                issue_date=self.clock(),
                due_date=None,
                source_period=(year, month),
            )
        except IntegrityError as exc:
            # A concurrent request won the period; our number goes back with the rollback
            await self.session.rollback()
            winner = await self.find_monthly_invoice(tenant_id, year, month)
            if winner is None:
                raise ConflictError(
                    "Invoice could not be numbered, retry the request",
                    {"tenant_id": str(tenant_id), "year": year, "month": month},
                ) from exc
            logger.info(
                "Lost monthly invoice race for tenant %s period %04d-%02d to %s",
                tenant_id,
                year,
                month,
                winner.invoice_id,
            )
            raise InvoiceAlreadyExistsError(winner.invoice_id, year, month) from None

        logger.info(
            "Generated invoice %s (%s) for tenant %s period %04d-%02d: total %s",
            invoice.invoice_id,
            invoice.reference,
            tenant_id,
            year,
            month,
            invoice.total_amount,
        )
        return invoice

    async def create_manual(
        self,
        tenant_id: UUID,
        customer: CustomerDetails,
        items: Sequence[ItemInput],
        issue_date: datetime | None = None,
        due_date: date | None = None,
    ) -> Invoice:
        """Create an invoice from caller-supplied items.

        Manual invoices carry no source period and never take part in the
        monthly uniqueness check. They are numbered in the bucket of their
        issue date.
        """
        self._validate_customer(customer)
        if not items:
            raise InvoiceValidationError("At least one item is required")
        tenant = await self._get_tenant(tenant_id)

        default_rate = self._vat_rate(tenant)
        lines = [InvoiceLineBuilder.from_item_input(item, default_rate) for item in items]

        try:
            invoice = await self._persist(
                tenant=tenant,
                customer=customer,
                lines=lines,
                issue_date=issue_date or self.clock(),
                due_date=due_date,
                source_period=None,
            )
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError(
                "Invoice could not be numbered, retry the request",
                {"tenant_id": str(tenant_id)},
            ) from exc

        logger.info(
            "Created manual invoice %s (%s) for tenant %s: total %s",
            invoice.invoice_id,
            invoice.reference,
            tenant_id,
            invoice.total_amount,
        )
        return invoice

    async def delete_invoice(self, tenant_id: UUID, invoice_id: UUID) -> None:
        """Delete a DRAFT invoice. Its number is not reclaimed."""
        invoice = await self.get_invoice(tenant_id, invoice_id)
        current = effective_status(invoice.status, invoice.due_date, self._today())
        if not InvoiceStateMachine.can_delete(current):
            raise InvalidStateError(current.value, "delete")

        await self.session.delete(invoice)
        await self.session.flush()
        logger.info("Deleted draft invoice %s (%s)", invoice_id, invoice.reference)

    async def transition_status(
        self,
        tenant_id: UUID,
        invoice_id: UUID,
        target: str,
        paid_date: date | None = None,
        payment_method: str | None = None,
    ) -> Invoice:
        """Move an invoice to a new status."""
        invoice = await self.get_invoice(tenant_id, invoice_id)
        from_status = invoice.status

        InvoiceStateMachine.transition(
            invoice,
            target,
            today=self._today(),
            paid_date=paid_date,
            payment_method=payment_method,
        )
        await self.session.flush()

        logger.info(
            "Invoice %s status %s -> %s",
            invoice_id,
            from_status,
            invoice.status,
        )
        return invoice

    async def get_invoice(self, tenant_id: UUID, invoice_id: UUID) -> Invoice:
        """Load one invoice with its items, scoped to the tenant."""
        result = await self.session.execute(
            select(Invoice).where(
                Invoice.invoice_id == invoice_id,
                Invoice.tenant_id == tenant_id,
            )
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    async def find_monthly_invoice(
        self, tenant_id: UUID, year: int, month: int
    ) -> Invoice | None:
        """Find the non-cancelled invoice covering a source month, if any."""
        result = await self.session.execute(
            select(Invoice).where(
                Invoice.tenant_id == tenant_id,
                Invoice.source_year == year,
                Invoice.source_month == month,
                Invoice.status != InvoiceStatus.CANCELLED.value,
            )
        )
        return result.scalars().first()

    async def list_invoices(
        self,
        tenant_id: UUID,
        status: str | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[Invoice], int]:
        """List a tenant's invoices, newest first.

        The status filter works on the display status, so OVERDUE and SENT
        split stored SENT invoices by due date.
        """
        today = self._today()
        query = select(Invoice).where(Invoice.tenant_id == tenant_id)

        if status:
            try:
                wanted = InvoiceStatus(status.upper())
            except ValueError:
                raise InvoiceValidationError(
                    f"Unknown status filter: {status}", {"status": status}
                ) from None
            if wanted == InvoiceStatus.OVERDUE:
                query = query.where(
                    Invoice.status == InvoiceStatus.SENT.value, Invoice.due_date < today
                )
            elif wanted == InvoiceStatus.SENT:
                query = query.where(
                    Invoice.status == InvoiceStatus.SENT.value, Invoice.due_date >= today
                )
            else:
                query = query.where(Invoice.status == wanted.value)

        if search:
            term = search.strip()
            conditions = [Invoice.customer_name.ilike(f"%{term}%")]
            if term.isdigit():
                conditions.append(Invoice.invoice_number == int(term))
            query = query.where(or_(*conditions))

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.session.scalar(count_query) or 0

        query = query.order_by(Invoice.issue_date.desc(), Invoice.invoice_number.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    def display_status(self, invoice: Invoice) -> InvoiceStatus:
        """Status as shown to users (OVERDUE derived)."""
        return effective_status(invoice.status, invoice.due_date, self._today())

    async def _persist(
        self,
        tenant: Tenant,
        customer: CustomerDetails,
        lines: list[InvoiceLine],
        issue_date: datetime,
        due_date: date | None,
        source_period: tuple[int, int] | None,
    ) -> Invoice:
        """Reserve a number and write the invoice, items and QR payload."""
        if issue_date.tzinfo is None:
            issue_date = issue_date.replace(tzinfo=timezone.utc)
        if due_date is None:
            due_date = issue_date.date() + timedelta(days=self._payment_term_days(tenant))
        if due_date < issue_date.date():
            raise InvoiceValidationError(
                "Due date cannot be before the issue date",
                {"issue_date": issue_date.date().isoformat(), "due_date": due_date.isoformat()},
            )

        errors = InvoiceLineBuilder.validate_lines(
            lines, derived_prices=source_period is not None
        )
        if errors:
            raise InvoiceValidationError("; ".join(errors))
        logger.debug("Invoice lines: %s", [line.to_canonical_dict() for line in lines])

        totals = VatCalculator.compute_invoice_totals(lines)
        try:
            qr_payload = CompliancePayloadEncoder.encode(
                seller_name=tenant.name,
                vat_number=tenant.vat_number,
                timestamp_utc=issue_date,
                invoice_total=totals.total,
                vat_total=totals.vat_amount,
            )
        except ValueError as exc:
            raise InvoiceValidationError(str(exc), {"tenant_id": str(tenant.tenant_id)}) from exc

        number = await self.sequencer.next_number(
            tenant.tenant_id, issue_date.year, issue_date.month
        )

        source_year, source_month = source_period if source_period else (None, None)
        invoice = Invoice(
            tenant_id=tenant.tenant_id,
            invoice_number=number,
            number_year=issue_date.year,
            number_month=issue_date.month,
            source_year=source_year,
            source_month=source_month,
            customer_name=customer.name.strip(),
            customer_vat=customer.vat_number,
            customer_address=customer.address.strip(),
            customer_city=customer.city.strip(),
            issue_date=issue_date,
            due_date=due_date,
            subtotal=totals.subtotal,
            vat_amount=totals.vat_amount,
            total_amount=totals.total,
            status=InvoiceStatus.DRAFT.value,
            qr_payload=qr_payload,
            items=[
                InvoiceItem(
                    position=position,
                    description=line.description,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    vat_rate=line.vat_rate,
                    line_total=line.line_total,
                    vat_amount=line.vat_amount,
                    total_amount=line.total_amount,
                )
                for position, line in enumerate(lines, start=1)
            ],
        )
        self.session.add(invoice)
        await self.session.flush()
        return invoice

    async def _get_tenant(self, tenant_id: UUID) -> Tenant:
        tenant = await self.session.get(Tenant, tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return tenant

    def _vat_rate(self, tenant: Tenant) -> Decimal:
        if tenant.vat_rate_percent is not None:
            return tenant.vat_rate_percent
        return self.settings.default_vat_rate

    def _payment_term_days(self, tenant: Tenant) -> int:
        if tenant.payment_term_days is not None:
            return tenant.payment_term_days
        return self.settings.default_payment_term_days

    def _today(self) -> date:
        return self.clock().date()

    @staticmethod
    def _validate_customer(customer: CustomerDetails) -> None:
        missing = [
            name
            for name, value in (
                ("name", customer.name),
                ("address", customer.address),
                ("city", customer.city),
            )
            if not (value or "").strip()
        ]
        if missing:
            raise InvoiceValidationError(
                f"Missing required customer fields: {', '.join(missing)}",
                {"missing": missing},
            )
