"""Labor billing engine: timesheet invoicing, VAT and e-invoice payloads."""

__version__ = "0.1.0"
