"""Billing engine services."""

from billing_engine.services.invoice_service import InvoiceBuilder
from billing_engine.services.report_service import ReportService
from billing_engine.services.sequencer import InvoiceNumberSequencer
from billing_engine.services.state_machine import (
    InvoiceStateMachine,
    InvoiceStatus,
    effective_status,
)

__all__ = [
    "InvoiceBuilder",
    "ReportService",
    "InvoiceNumberSequencer",
    "InvoiceStateMachine",
    "InvoiceStatus",
    "effective_status",
]
