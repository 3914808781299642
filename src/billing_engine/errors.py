"""Error taxonomy for the billing engine.

The core raises these typed errors and never translates them; only the API
boundary maps them onto HTTP responses.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID


class BillingError(Exception):
    """Base class for all billing engine errors."""

    code = "BILLING_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


class ValidationError(BillingError):
    """Malformed request, rejected before any side effect."""

    code = "VALIDATION_ERROR"


class ConflictError(BillingError):
    """Request conflicts with existing persisted state."""

    code = "CONFLICT"


class StateError(BillingError):
    """Operation not permitted in the invoice's current state."""

    code = "INVALID_STATE"


class IntegrityFault(BillingError):
    """Source data is inconsistent; the whole request must fail."""

    code = "INTEGRITY_FAULT"


class NotFoundError(BillingError):
    """Requested entity does not exist for the tenant."""

    code = "NOT_FOUND"


class InvoiceValidationError(ValidationError):
    """Raised for bad periods, customers, items or rates."""


class EmptyPeriodError(ValidationError):
    """Raised when a billing period has no timesheet rows."""

    code = "EMPTY_PERIOD"

    def __init__(self, tenant_id: UUID, year: int, month: int):
        self.tenant_id = tenant_id
        self.year = year
        self.month = month
        super().__init__(
            f"No timesheets found for {month:02d}/{year}",
            {"tenant_id": str(tenant_id), "year": year, "month": month},
        )


class InvoiceAlreadyExistsError(ConflictError):
    """Raised when a non-cancelled invoice already covers the period."""

    code = "INVOICE_EXISTS"

    def __init__(self, invoice_id: UUID, year: int, month: int):
        self.invoice_id = invoice_id
        self.year = year
        self.month = month
        super().__init__(
            f"Invoice already exists for {month:02d}/{year}",
            {"invoice_id": str(invoice_id), "year": year, "month": month},
        )


class InvalidTransitionError(StateError):
    """Raised when an invalid status transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, {"from_status": from_status, "to_status": to_status})


class InvalidStateError(StateError):
    """Raised when an operation is not allowed in the current status."""

    def __init__(self, current_status: str, operation: str):
        self.current_status = current_status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} an invoice in status '{current_status}'",
            {"current_status": current_status, "operation": operation},
        )


class RateIntegrityError(IntegrityFault):
    """Raised when a laborer, job or rate referenced by a timesheet is missing."""

    def __init__(self, reason: str, **context: Any):
        self.reason = reason
        super().__init__(
            f"Billing data integrity fault: {reason}",
            {key: str(value) for key, value in context.items()},
        )


class InvoiceNotFoundError(NotFoundError):
    """Raised when an invoice is not found within the tenant."""

    def __init__(self, invoice_id: UUID):
        self.invoice_id = invoice_id
        super().__init__("Invoice not found", {"invoice_id": str(invoice_id)})


class TenantNotFoundError(NotFoundError):
    """Raised when the tenant supplied by the auth layer does not exist."""

    def __init__(self, tenant_id: UUID):
        self.tenant_id = tenant_id
        super().__init__("Tenant not found", {"tenant_id": str(tenant_id)})
