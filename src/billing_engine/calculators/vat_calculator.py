"""VAT calculation with per-line rounding."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from billing_engine.calculators.types import InvoiceTotals
from billing_engine.errors import InvoiceValidationError

HUNDRED = Decimal("100")
MAX_RATE = Decimal("100")


class TaxedLine(Protocol):
    line_total: Decimal
    vat_amount: Decimal


class VatCalculator:
    """Computes line and invoice VAT for a single flat-rate jurisdiction.

    Rounding is half away from zero (ROUND_HALF_UP on Decimal) and happens
    once per line. The invoice VAT total is the sum of the already-rounded
    line VATs, never VAT recomputed on the subtotal, so splitting the same
    gross amount across more lines cannot change how rounding is applied
    per line.

    The rate is always passed in explicitly. Callers capture the tenant's
    configured rate at invoice creation and store it on each item.
    """

    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places, half away from zero."""
        return amount.quantize(VatCalculator.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def validate_rate(rate_percent: Decimal) -> Decimal:
        """Check a VAT rate percentage is within [0, 100]."""
        rate = Decimal(rate_percent)
        if rate < 0 or rate > MAX_RATE:
            raise InvoiceValidationError(
                f"VAT rate must be between 0 and 100, got {rate}",
                {"vat_rate": str(rate)},
            )
        return rate

    @classmethod
    def compute_line_vat(cls, taxable_amount: Decimal, rate_percent: Decimal) -> Decimal:
        """VAT for one line: round2(taxable * rate / 100)."""
        rate = cls.validate_rate(rate_percent)
        return cls.round_to_cents(Decimal(taxable_amount) * rate / HUNDRED)

    @classmethod
    def compute_invoice_totals(cls, items: Iterable[TaxedLine]) -> InvoiceTotals:
        """Sum line totals and line VATs into invoice totals."""
        subtotal = Decimal("0")
        vat_amount = Decimal("0")
        for item in items:
            subtotal += item.line_total
            vat_amount += item.vat_amount
        subtotal = cls.round_to_cents(subtotal)
        vat_amount = cls.round_to_cents(vat_amount)
        return InvoiceTotals(
            subtotal=subtotal,
            vat_amount=vat_amount,
            total=subtotal + vat_amount,
        )

    @classmethod
    def vat_on_subtotal(cls, items: Iterable[TaxedLine], rate_percent: Decimal) -> Decimal:
        """VAT computed once on the summed subtotal.

        Never used to bill. Kept for audit comparison against the per-line
        total, where the two differ by the accumulated rounding.
        """
        subtotal = sum((item.line_total for item in items), Decimal("0"))
        return cls.compute_line_vat(subtotal, rate_percent)
