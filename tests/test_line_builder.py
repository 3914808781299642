"""Unit tests for InvoiceLineBuilder."""

from decimal import Decimal
from uuid import uuid4

import pytest

from billing_engine.calculators.line_builder import InvoiceLineBuilder
from billing_engine.calculators.types import BillableLine, ItemInput
from billing_engine.errors import InvoiceValidationError


def billable(name: str, regular: str, overtime: str, charge: str) -> BillableLine:
    return BillableLine(
        job_id=uuid4(),
        job_name=name,
        total_regular_hours=Decimal(regular),
        total_overtime_hours=Decimal(overtime),
        cost_amount=Decimal("0"),
        charge_amount=Decimal(charge),
        laborer_count=1,
    )


class TestFromBillableLine:
    """Test lines built from aggregated jobs."""

    def test_charge_is_line_total(self):
        result = InvoiceLineBuilder.from_billable_line(
            billable("Welder", "24", "6", "660.00"), Decimal("15")
        )
        assert result.description == "Welder"
        assert result.quantity == Decimal("30")
        assert result.line_total == Decimal("660.00")
        assert result.unit_price == Decimal("22.0000")
        assert result.vat_amount == Decimal("99.00")
        assert result.total_amount == Decimal("759.00")

    def test_derived_unit_price_rounded_to_four_places(self):
        result = InvoiceLineBuilder.from_billable_line(
            billable("Painter", "3", "0", "100.00"), Decimal("15")
        )
        assert result.unit_price == Decimal("33.3333")
        assert result.line_total == Decimal("100.00")
        assert InvoiceLineBuilder.validate_lines([result], derived_prices=True) == []

    def test_zero_hour_jobs_are_skipped(self):
        lines = InvoiceLineBuilder.billable_lines_to_invoice_lines(
            [billable("Idle", "0", "0", "0"), billable("Welder", "8", "0", "160.00")],
            Decimal("15"),
        )
        assert [line.description for line in lines] == ["Welder"]

    def test_long_job_keeps_charge_within_unit_price_precision(self):
        """The charge stays authoritative even when the rounded unit price drifts a cent."""
        result = InvoiceLineBuilder.from_billable_line(
            billable("Mason", "220", "0", "5000.00"), Decimal("15")
        )

        assert result.unit_price == Decimal("22.7273")
        assert result.line_total == Decimal("5000.00")
        assert InvoiceLineBuilder.round_to_cents(result.quantity * result.unit_price) == Decimal("5000.01")
        assert InvoiceLineBuilder.validate_lines([result], derived_prices=True) == []
        assert len(InvoiceLineBuilder.validate_lines([result])) == 1


class TestFromItemInput:
    """Test manual item lines."""

    def test_line_total_from_quantity_and_price(self):
        result = InvoiceLineBuilder.from_item_input(
            ItemInput("Site supervision", Decimal("2.5"), Decimal("40.10")), Decimal("15")
        )
        assert result.line_total == Decimal("100.25")
        assert result.vat_amount == Decimal("15.04")
        assert result.vat_rate == Decimal("15")

    def test_precision_up_to_column_scale_accepted(self):
        result = InvoiceLineBuilder.from_item_input(
            ItemInput("Extra", Decimal("1.55"), Decimal("10.0001")), Decimal("15")
        )
        assert result.line_total == Decimal("15.50")
        assert InvoiceLineBuilder.validate_lines([result]) == []

    def test_item_vat_rate_overrides_default(self):
        result = InvoiceLineBuilder.from_item_input(
            ItemInput("Exempt training", Decimal("1"), Decimal("500"), vat_rate=Decimal("0")),
            Decimal("15"),
        )
        assert result.vat_rate == Decimal("0")
        assert result.vat_amount == Decimal("0.00")

    @pytest.mark.parametrize(
        "item",
        [
            ItemInput("  ", Decimal("1"), Decimal("10")),
            ItemInput("Work", Decimal("0"), Decimal("10")),
            ItemInput("Work", Decimal("-1"), Decimal("10")),
            ItemInput("Work", Decimal("1"), Decimal("0")),
            ItemInput("Work", Decimal("1"), Decimal("10"), vat_rate=Decimal("101")),
            ItemInput("Work", Decimal("1.555"), Decimal("10")),
            ItemInput("Work", Decimal("1"), Decimal("10.00005")),
        ],
    )
    def test_invalid_items_rejected(self, item):
        with pytest.raises(InvoiceValidationError):
            InvoiceLineBuilder.from_item_input(item, Decimal("15"))


class TestValidateLines:
    """Test line invariant checks."""

    def test_valid_manual_lines(self):
        lines = [
            InvoiceLineBuilder.from_item_input(
                ItemInput("A", Decimal("3"), Decimal("0.10")), Decimal("15")
            )
        ]
        assert InvoiceLineBuilder.validate_lines(lines) == []

    def test_detects_vat_mismatch(self):
        good = InvoiceLineBuilder.from_item_input(
            ItemInput("A", Decimal("1"), Decimal("100")), Decimal("15")
        )
        bad = type(good)(
            description=good.description,
            quantity=good.quantity,
            unit_price=good.unit_price,
            vat_rate=good.vat_rate,
            line_total=good.line_total,
            vat_amount=Decimal("14.99"),
        )
        errors = InvoiceLineBuilder.validate_lines([bad])
        assert len(errors) == 1
        assert "VAT" in errors[0]
