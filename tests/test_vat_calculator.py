"""Unit tests for VatCalculator."""

from decimal import Decimal

import pytest

from billing_engine.calculators.types import InvoiceLine
from billing_engine.calculators.vat_calculator import VatCalculator
from billing_engine.errors import InvoiceValidationError


def line(total: str, vat: str, rate: str = "15") -> InvoiceLine:
    return InvoiceLine(
        description="x",
        quantity=Decimal("1"),
        unit_price=Decimal(total),
        vat_rate=Decimal(rate),
        line_total=Decimal(total),
        vat_amount=Decimal(vat),
    )


class TestRounding:
    """Test half-away-from-zero rounding to cents."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            ("1.005", "1.01"),
            ("1.004", "1.00"),
            ("2.675", "2.68"),
            ("0.125", "0.13"),
            ("-1.005", "-1.01"),
            ("100", "100.00"),
        ],
    )
    def test_round_to_cents(self, amount, expected):
        assert VatCalculator.round_to_cents(Decimal(amount)) == Decimal(expected)


class TestLineVat:
    """Test VAT on a single line."""

    def test_standard_rate(self):
        assert VatCalculator.compute_line_vat(Decimal("660.00"), Decimal("15")) == Decimal("99.00")

    def test_half_cent_rounds_up(self):
        # 0.10 * 15% = 0.015
        assert VatCalculator.compute_line_vat(Decimal("0.10"), Decimal("15")) == Decimal("0.02")

    def test_zero_rate(self):
        assert VatCalculator.compute_line_vat(Decimal("123.45"), Decimal("0")) == Decimal("0.00")

    def test_fractional_rate(self):
        assert VatCalculator.compute_line_vat(Decimal("200.00"), Decimal("12.5")) == Decimal("25.00")

    @pytest.mark.parametrize("rate", ["-1", "100.01", "150"])
    def test_rate_out_of_range(self, rate):
        with pytest.raises(InvoiceValidationError):
            VatCalculator.compute_line_vat(Decimal("10"), Decimal(rate))

    def test_rate_bounds_inclusive(self):
        assert VatCalculator.validate_rate(Decimal("0")) == Decimal("0")
        assert VatCalculator.validate_rate(Decimal("100")) == Decimal("100")


class TestInvoiceTotals:
    """Test invoice totals are sums of rounded lines."""

    def test_totals(self):
        totals = VatCalculator.compute_invoice_totals(
            [line("400.00", "60.00"), line("660.00", "99.00")]
        )
        assert totals.subtotal == Decimal("1060.00")
        assert totals.vat_amount == Decimal("159.00")
        assert totals.total == Decimal("1219.00")

    def test_empty(self):
        totals = VatCalculator.compute_invoice_totals([])
        assert totals.total == Decimal("0.00")

    def test_per_line_vat_matches_subtotal_when_no_halves(self):
        """10.005 charges round to 10.01; three lines give 4.50 either way."""
        lines = [
            line(
                str(VatCalculator.round_to_cents(Decimal("10.005"))),
                str(VatCalculator.compute_line_vat(Decimal("10.01"), Decimal("15"))),
            )
            for _ in range(3)
        ]
        totals = VatCalculator.compute_invoice_totals(lines)
        assert totals.subtotal == Decimal("30.03")
        assert totals.vat_amount == Decimal("4.50")
        assert VatCalculator.vat_on_subtotal(lines, Decimal("15")) == Decimal("4.50")

    def test_per_line_rounding_delta_is_kept(self):
        """Three 0.10 lines: per-line VAT 0.06, subtotal VAT would be 0.05."""
        lines = [line("0.10", "0.02") for _ in range(3)]
        totals = VatCalculator.compute_invoice_totals(lines)
        assert totals.vat_amount == Decimal("0.06")
        assert VatCalculator.vat_on_subtotal(lines, Decimal("15")) == Decimal("0.05")
        assert totals.total == Decimal("0.36")
