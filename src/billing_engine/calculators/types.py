"""Type definitions for the billing pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class LaborerRates:
    """Rates for one laborer as seen by billing."""

    laborer_id: UUID
    name: str
    pay_rate: Decimal  # Cost to the business per hour
    charge_rate: Decimal  # Price to the client per hour


@dataclass(frozen=True)
class JobInfo:
    """Job name and grouping label."""

    job_id: UUID
    name: str
    group_name: str | None = None


@dataclass(frozen=True)
class BillableLine:
    """Aggregated hours, cost and charge for one job in one period.

    Derived on every aggregation and never persisted on its own.
    """

    job_id: UUID
    job_name: str
    total_regular_hours: Decimal
    total_overtime_hours: Decimal
    cost_amount: Decimal
    charge_amount: Decimal  # Taxable base
    laborer_count: int

    @property
    def total_hours(self) -> Decimal:
        return self.total_regular_hours + self.total_overtime_hours


@dataclass(frozen=True)
class CustomerDetails:
    """Bill-to party printed on the invoice."""

    name: str
    address: str
    city: str
    vat_number: str | None = None


@dataclass(frozen=True)
class ItemInput:
    """Caller-supplied line for a manual invoice."""

    description: str
    quantity: Decimal
    unit_price: Decimal
    vat_rate: Decimal | None = None  # None means the tenant's rate


@dataclass(frozen=True)
class InvoiceLine:
    """A fully computed invoice line before persistence."""

    description: str
    quantity: Decimal
    unit_price: Decimal
    vat_rate: Decimal
    line_total: Decimal
    vat_amount: Decimal

    @property
    def total_amount(self) -> Decimal:
        return self.line_total + self.vat_amount

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict (deterministic ordering) for logging and audit."""
        return {
            "description": self.description,
            "quantity": str(self.quantity),
            "unit_price": str(self.unit_price),
            "vat_rate": str(self.vat_rate),
            "line_total": str(self.line_total),
            "vat_amount": str(self.vat_amount),
        }


@dataclass(frozen=True)
class InvoiceTotals:
    """Invoice-level sums of already-rounded line values."""

    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal
