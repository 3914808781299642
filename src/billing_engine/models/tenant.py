"""Tenant model: the isolation boundary and its billing profile."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from billing_engine.models.base import Base, TimestampMixin


class Tenant(Base, TimestampMixin):
    """Multi-tenant container.

    The seller name and VAT registration number feed the compliance QR
    payload; the VAT rate and payment term are captured onto each invoice
    when it is created.
    """

    __tablename__ = "tenant"

    tenant_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    vat_number: Mapped[str] = mapped_column(String, nullable=False, default="")
    # Null falls back to the engine-wide defaults in Settings
    vat_rate_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    payment_term_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        CheckConstraint("status IN ('active', 'suspended', 'closed')", name="tenant_status_check"),
        CheckConstraint(
            "vat_rate_percent IS NULL OR (vat_rate_percent >= 0 AND vat_rate_percent <= 100)",
            name="tenant_vat_rate_check",
        ),
        CheckConstraint(
            "payment_term_days IS NULL OR payment_term_days >= 0",
            name="tenant_payment_term_check",
        ),
    )
