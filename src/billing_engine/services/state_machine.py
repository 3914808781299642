"""Invoice state machine with table-driven transition validation."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import TYPE_CHECKING

from billing_engine.errors import InvalidTransitionError, InvoiceValidationError

if TYPE_CHECKING:
    from billing_engine.models import Invoice


class InvoiceStatus(str, Enum):
    """Invoice status values.

    OVERDUE is never stored. It is derived at read time from a SENT invoice
    whose due date has passed.
    """

    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    CANCELLED = "CANCELLED"
    OVERDUE = "OVERDUE"

    def __str__(self) -> str:
        return self.value


STORED_STATUSES = (
    InvoiceStatus.DRAFT,
    InvoiceStatus.SENT,
    InvoiceStatus.PAID,
    InvoiceStatus.CANCELLED,
)


def effective_status(status: str, due_date: date, today: date) -> InvoiceStatus:
    """Display status: SENT past its due date reads as OVERDUE."""
    current = InvoiceStatus(status)
    if current == InvoiceStatus.SENT and due_date < today:
        return InvoiceStatus.OVERDUE
    return current


class InvoiceStateMachine:
    """State machine for invoice status transitions.

    Allowed transitions:
    - DRAFT → SENT
    - DRAFT → CANCELLED
    - SENT → PAID
    - SENT → CANCELLED

    OVERDUE behaves as SENT. PAID and CANCELLED are terminal.
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        InvoiceStatus.DRAFT: [InvoiceStatus.SENT, InvoiceStatus.CANCELLED],
        InvoiceStatus.SENT: [InvoiceStatus.PAID, InvoiceStatus.CANCELLED],
        InvoiceStatus.OVERDUE: [InvoiceStatus.PAID, InvoiceStatus.CANCELLED],
        InvoiceStatus.PAID: [],  # Terminal state
        InvoiceStatus.CANCELLED: [],  # Terminal state
    }

    # Statuses where the invoice may be deleted outright
    DELETABLE = {InvoiceStatus.DRAFT}

    # Transitions that capture payment details
    REQUIRES_PAYMENT = {InvoiceStatus.PAID}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(str(from_status), str(to_status))

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    @classmethod
    def can_delete(cls, status: str) -> bool:
        """Check if an invoice in this status may be deleted."""
        return status in cls.DELETABLE

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return not cls.VALID_TRANSITIONS.get(status, [])

    @classmethod
    def requires_payment(cls, to_status: str) -> bool:
        return to_status in cls.REQUIRES_PAYMENT

    @classmethod
    def parse_target(cls, current: InvoiceStatus, target: str) -> InvoiceStatus:
        """Parse a requested status; unknown values are invalid transitions."""
        try:
            return InvoiceStatus(str(target).upper())
        except ValueError:
            raise InvalidTransitionError(current.value, str(target)) from None

    @classmethod
    def transition(
        cls,
        invoice: Invoice,
        target: str,
        today: date,
        paid_date: date | None = None,
        payment_method: str | None = None,
    ) -> Invoice:
        """Apply a status transition and its side effects to an invoice.

        Validation uses the derived status, so an overdue invoice follows
        the SENT row. PAID captures the payment method (required) and the
        paid date (defaults to today).

        Raises:
            InvalidTransitionError: If the edge is not in the table.
            InvoiceValidationError: If PAID is requested without a method.
        """
        current = effective_status(invoice.status, invoice.due_date, today)
        requested = cls.parse_target(current, target)
        cls.validate_transition(current, requested)

        if cls.requires_payment(requested):
            method = (payment_method or "").strip()
            if not method:
                raise InvoiceValidationError(
                    "Payment method is required to mark an invoice as paid",
                    {"invoice_id": str(invoice.invoice_id)},
                )
            invoice.paid_date = paid_date or today
            invoice.payment_method = method

        invoice.status = requested.value
        return invoice
