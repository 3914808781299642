"""Invoice, invoice item, and numbering sequence models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_engine.models.base import Base, TimestampMixin, UpdatedAtMixin

# Partial index predicate shared by PostgreSQL and SQLite
_OPEN_MONTHLY_INVOICE = text("status <> 'CANCELLED' AND source_month IS NOT NULL")


class Invoice(Base, TimestampMixin, UpdatedAtMixin):
    """Customer invoice.

    Monetary fields are immutable after creation. Only status, paid_date and
    payment_method change, through the lifecycle state machine.
    """

    __tablename__ = "invoice"

    invoice_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )

    # Sequential number within (tenant, number_year, number_month)
    invoice_number: Mapped[int] = mapped_column(Integer, nullable=False)
    number_year: Mapped[int] = mapped_column(Integer, nullable=False)
    number_month: Mapped[int] = mapped_column(Integer, nullable=False)

    # Billing period for monthly invoices; null for manual invoices
    source_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    source_month: Mapped[int | None] = mapped_column(Integer, nullable=True)

    customer_name: Mapped[str] = mapped_column(String, nullable=False)
    customer_vat: Mapped[str | None] = mapped_column(String, nullable=True)
    customer_address: Mapped[str] = mapped_column(String, nullable=False)
    customer_city: Mapped[str] = mapped_column(String, nullable=False)

    issue_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    status: Mapped[str] = mapped_column(String, nullable=False, default="DRAFT")
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)

    qr_payload: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "number_year",
            "number_month",
            "invoice_number",
            name="invoice_tenant_number_unique",
        ),
        Index(
            "invoice_tenant_source_period_unique",
            "tenant_id",
            "source_year",
            "source_month",
            unique=True,
            postgresql_where=_OPEN_MONTHLY_INVOICE,
            sqlite_where=_OPEN_MONTHLY_INVOICE,
        ),
        CheckConstraint(
            "status IN ('DRAFT', 'SENT', 'PAID', 'CANCELLED')",
            name="invoice_status_check",
        ),
        CheckConstraint("number_month BETWEEN 1 AND 12", name="invoice_number_month_check"),
        CheckConstraint(
            "source_month IS NULL OR source_month BETWEEN 1 AND 12",
            name="invoice_source_month_check",
        ),
        CheckConstraint(
            "(source_year IS NULL) = (source_month IS NULL)",
            name="invoice_source_period_check",
        ),
        CheckConstraint("invoice_number >= 1", name="invoice_number_positive"),
        Index("invoice_tenant_status_idx", "tenant_id", "status"),
    )

    items: Mapped[list[InvoiceItem]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
        lazy="selectin",
    )

    @property
    def is_manual(self) -> bool:
        return self.source_month is None

    @property
    def reference(self) -> str:
        """Human-facing invoice reference, e.g. INV-2024-03-0001."""
        return f"INV-{self.number_year:04d}-{self.number_month:02d}-{self.invoice_number:04d}"


class InvoiceItem(Base):
    """Invoice line with its own captured VAT rate."""

    __tablename__ = "invoice_item"

    invoice_item_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    invoice_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("invoice.invoice_id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    vat_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint("invoice_id", "position", name="invoice_item_position_unique"),
        CheckConstraint("quantity > 0", name="invoice_item_quantity_check"),
    )

    invoice: Mapped[Invoice] = relationship(back_populates="items")


class InvoiceSequence(Base):
    """Per-bucket invoice number counter.

    One row per (tenant, year, month). The row is created on first use and
    advanced with a single UPDATE, which holds the row lock until the
    surrounding transaction ends.
    """

    __tablename__ = "invoice_sequence"

    tenant_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        primary_key=True,
    )
    year: Mapped[int] = mapped_column(Integer, primary_key=True)
    month: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("month BETWEEN 1 AND 12", name="invoice_sequence_month_check"),
        CheckConstraint("last_number >= 0", name="invoice_sequence_last_number_check"),
    )
