"""ORM models."""

from billing_engine.models.base import Base, TimestampMixin, UpdatedAtMixin, utcnow
from billing_engine.models.invoice import Invoice, InvoiceItem, InvoiceSequence
from billing_engine.models.tenant import Tenant
from billing_engine.models.workforce import Job, Laborer, TimesheetEntry

__all__ = [
    "Base",
    "TimestampMixin",
    "UpdatedAtMixin",
    "utcnow",
    "Invoice",
    "InvoiceItem",
    "InvoiceSequence",
    "Tenant",
    "Job",
    "Laborer",
    "TimesheetEntry",
]
