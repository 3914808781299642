"""Amount in words for printed invoices."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen",
]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]
SCALES = ["", "Thousand", "Million", "Billion", "Trillion"]


def _hundreds_to_words(num: int) -> str:
    parts: list[str] = []
    if num >= 100:
        parts.append(f"{ONES[num // 100]} Hundred")
        num %= 100
    if num >= 20:
        parts.append(TENS[num // 10] + (f" {ONES[num % 10]}" if num % 10 else ""))
    elif num > 0:
        parts.append(ONES[num])
    return " ".join(parts)


def integer_to_words(num: int) -> str:
    """Spell out a non-negative integer in English."""
    if num == 0:
        return "Zero"
    chunks: list[str] = []
    scale = 0
    while num > 0:
        chunk = num % 1000
        if chunk:
            words = _hundreds_to_words(chunk)
            chunks.insert(0, f"{words} {SCALES[scale]}".strip())
        num //= 1000
        scale += 1
        if scale >= len(SCALES) and num:
            raise ValueError("Amount too large to spell out")
    return " ".join(chunks)


def amount_to_words(
    amount: Decimal,
    currency: str = "Saudi Riyals",
    minor_unit: str = "Halalas",
) -> str:
    """Spell out a monetary amount, e.g. 12.50 -> 'Twelve and Fifty Halalas Saudi Riyals Only'."""
    amount = Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if amount < 0:
        raise ValueError("Amount must not be negative")
    whole = int(amount)
    fraction = int((amount - whole) * 100)

    result = integer_to_words(whole)
    if fraction:
        result += f" and {integer_to_words(fraction)} {minor_unit}"
    return f"{result} {currency} Only"
