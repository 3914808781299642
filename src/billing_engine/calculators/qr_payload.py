"""Compliance QR payload (TLV, Base64) for simplified tax invoices."""

from __future__ import annotations

import base64
import binascii
from datetime import datetime, timezone
from decimal import Decimal
from enum import IntEnum

from billing_engine.calculators.vat_calculator import VatCalculator


class QrTag(IntEnum):
    """TLV tags, in the order they must appear."""

    SELLER_NAME = 1
    VAT_NUMBER = 2
    TIMESTAMP = 3
    INVOICE_TOTAL = 4
    VAT_TOTAL = 5


class CompliancePayloadEncoder:
    """Encodes the five e-invoice QR fields as Base64-wrapped TLV.

    Each field is one tag byte, one length byte (UTF-8 byte length of the
    value) and the raw value bytes, concatenated in tag order. The encoder
    is pure: the same inputs always produce the same string, so a payload
    can be regenerated and compared during an audit.
    """

    MAX_VALUE_BYTES = 255

    @staticmethod
    def format_timestamp(timestamp_utc: datetime) -> str:
        """ISO-8601 UTC timestamp with a Z suffix and second precision."""
        if timestamp_utc.tzinfo is None:
            timestamp_utc = timestamp_utc.replace(tzinfo=timezone.utc)
        return timestamp_utc.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    @staticmethod
    def format_amount(amount: Decimal) -> str:
        return f"{VatCalculator.round_to_cents(Decimal(amount)):.2f}"

    @classmethod
    def encode_tlv(cls, tag: int, value: str) -> bytes:
        raw = value.encode("utf-8")
        if len(raw) > cls.MAX_VALUE_BYTES:
            raise ValueError(
                f"QR field {tag} is {len(raw)} bytes, limit is {cls.MAX_VALUE_BYTES}"
            )
        return bytes([tag, len(raw)]) + raw

    @classmethod
    def encode(
        cls,
        seller_name: str,
        vat_number: str,
        timestamp_utc: datetime,
        invoice_total: Decimal,
        vat_total: Decimal,
    ) -> str:
        """Build the Base64 TLV payload for the five compliance fields."""
        fields = [
            (QrTag.SELLER_NAME, seller_name),
            (QrTag.VAT_NUMBER, vat_number),
            (QrTag.TIMESTAMP, cls.format_timestamp(timestamp_utc)),
            (QrTag.INVOICE_TOTAL, cls.format_amount(invoice_total)),
            (QrTag.VAT_TOTAL, cls.format_amount(vat_total)),
        ]
        tlv = b"".join(cls.encode_tlv(tag, value) for tag, value in fields)
        return base64.b64encode(tlv).decode("ascii")

    @staticmethod
    def decode(payload: str) -> dict[int, str]:
        """Decode a payload back into {tag: value}.

        Raises:
            ValueError: If the payload is not valid Base64 or the TLV
                stream is truncated.
        """
        try:
            raw = base64.b64decode(payload, validate=True)
        except binascii.Error as exc:
            raise ValueError(f"QR payload is not valid Base64: {exc}") from exc

        fields: dict[int, str] = {}
        pos = 0
        while pos < len(raw):
            if pos + 2 > len(raw):
                raise ValueError("Truncated TLV header")
            tag, length = raw[pos], raw[pos + 1]
            start, end = pos + 2, pos + 2 + length
            if end > len(raw):
                raise ValueError(f"Truncated TLV value for tag {tag}")
            fields[tag] = raw[start:end].decode("utf-8")
            pos = end
        return fields
