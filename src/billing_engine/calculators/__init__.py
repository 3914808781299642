"""Billing calculations: aggregation, VAT, lines, and compliance payloads."""

from billing_engine.calculators.aggregator import TimesheetAggregator, month_bounds
from billing_engine.calculators.line_builder import InvoiceLineBuilder
from billing_engine.calculators.qr_payload import CompliancePayloadEncoder, QrTag
from billing_engine.calculators.rate_catalog import RateCatalog
from billing_engine.calculators.vat_calculator import VatCalculator
from billing_engine.calculators.words import amount_to_words

__all__ = [
    "TimesheetAggregator",
    "month_bounds",
    "InvoiceLineBuilder",
    "CompliancePayloadEncoder",
    "QrTag",
    "RateCatalog",
    "VatCalculator",
    "amount_to_words",
]
