"""Invoice line builder."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from billing_engine.calculators.types import BillableLine, InvoiceLine, ItemInput
from billing_engine.calculators.vat_calculator import VatCalculator
from billing_engine.errors import InvoiceValidationError


class InvoiceLineBuilder:
    """Builds computed invoice lines from billable lines or manual input.

    Rounding:
    - Money to 2 decimals, half away from zero, once per line
    - Derived unit prices to 4 decimals

    Manual quantities and unit prices are stored as given, so they may not
    carry more places than their columns (2 and 4).

    For aggregated lines the charge amount is authoritative: it becomes the
    line total as-is and the unit price is derived from it for display.
    """

    QUANTITY_PRECISION = Decimal("0.01")
    UNIT_PRICE_PRECISION = Decimal("0.0001")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return VatCalculator.round_to_cents(amount)

    @staticmethod
    def derive_unit_price(amount: Decimal, quantity: Decimal) -> Decimal:
        """Unit price implied by an amount over a quantity."""
        if quantity <= 0:
            raise InvoiceValidationError(
                "Cannot derive a unit price from a non-positive quantity",
                {"quantity": str(quantity)},
            )
        return (amount / quantity).quantize(
            InvoiceLineBuilder.UNIT_PRICE_PRECISION, rounding=ROUND_HALF_UP
        )

    @staticmethod
    def from_billable_line(line: BillableLine, vat_rate: Decimal) -> InvoiceLine:
        """Create an invoice line from an aggregated job line."""
        quantity = line.total_hours
        line_total = InvoiceLineBuilder.round_to_cents(line.charge_amount)
        return InvoiceLine(
            description=line.job_name,
            quantity=quantity,
            unit_price=InvoiceLineBuilder.derive_unit_price(line_total, quantity),
            vat_rate=VatCalculator.validate_rate(vat_rate),
            line_total=line_total,
            vat_amount=VatCalculator.compute_line_vat(line_total, vat_rate),
        )

    @staticmethod
    def _check_places(description: str, field: str, value: Decimal, precision: Decimal) -> None:
        if value != value.quantize(precision, rounding=ROUND_HALF_UP):
            raise InvoiceValidationError(
                f"Item {field} has more decimal places than allowed",
                {"description": description, field: str(value)},
            )

    @staticmethod
    def from_item_input(item: ItemInput, default_vat_rate: Decimal) -> InvoiceLine:
        """Create an invoice line from a caller-supplied manual item."""
        description = item.description.strip()
        if not description:
            raise InvoiceValidationError("Item description is required")
        if item.quantity <= 0:
            raise InvoiceValidationError(
                "Item quantity must be positive",
                {"description": description, "quantity": str(item.quantity)},
            )
        if item.unit_price <= 0:
            raise InvoiceValidationError(
                "Item unit price must be positive",
                {"description": description, "unit_price": str(item.unit_price)},
            )
        InvoiceLineBuilder._check_places(
            description, "quantity", item.quantity, InvoiceLineBuilder.QUANTITY_PRECISION
        )
        InvoiceLineBuilder._check_places(
            description, "unit_price", item.unit_price, InvoiceLineBuilder.UNIT_PRICE_PRECISION
        )

        vat_rate = item.vat_rate if item.vat_rate is not None else default_vat_rate
        line_total = InvoiceLineBuilder.round_to_cents(item.quantity * item.unit_price)
        return InvoiceLine(
            description=description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            vat_rate=VatCalculator.validate_rate(vat_rate),
            line_total=line_total,
            vat_amount=VatCalculator.compute_line_vat(line_total, vat_rate),
        )

    @staticmethod
    def billable_lines_to_invoice_lines(
        lines: list[BillableLine], vat_rate: Decimal
    ) -> list[InvoiceLine]:
        """Convert aggregated lines, skipping jobs with nothing to bill."""
        return [
            InvoiceLineBuilder.from_billable_line(line, vat_rate)
            for line in lines
            if line.total_hours > 0
        ]

    @staticmethod
    def validate_lines(lines: list[InvoiceLine], derived_prices: bool = False) -> list[str]:
        """Validate line arithmetic invariants.

        Returns list of error messages (empty if all valid). With
        derived_prices the unit price is only checked to be consistent with
        the line total within its own rounding precision.
        """
        errors: list[str] = []

        for i, line in enumerate(lines):
            if line.line_total < 0 or line.vat_amount < 0:
                errors.append(f"Line {i} has a negative amount")
            expected_vat = VatCalculator.compute_line_vat(line.line_total, line.vat_rate)
            if line.vat_amount != expected_vat:
                errors.append(
                    f"Line {i} VAT {line.vat_amount} does not match {expected_vat}"
                )
            product = line.quantity * line.unit_price
            if derived_prices:
                tolerance = line.quantity * InvoiceLineBuilder.UNIT_PRICE_PRECISION
                if abs(product - line.line_total) > tolerance:
                    errors.append(
                        f"Line {i} unit price {line.unit_price} inconsistent with total {line.line_total}"
                    )
            elif InvoiceLineBuilder.round_to_cents(product) != line.line_total:
                errors.append(
                    f"Line {i} total {line.line_total} does not equal quantity x unit price"
                )

        return errors
