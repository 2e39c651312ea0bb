"""
Money helpers.

All balances are integer cents. Client input may arrive either as an explicit
``*_cents`` integer or as a decimal amount ("125.50", 125.5); decimal input is
rounded half-up to the cent and never passes through binary floating point
arithmetic.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .validation import ValidationError

CENT = Decimal("0.01")


def decimal_to_cents(value, field: str = "amount") -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    try:
        # str() first so 0.1 becomes Decimal("0.1"), not its binary expansion
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    return int((amount.quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def cents_to_decimal(cents: int | None) -> Decimal | None:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(CENT)


def format_cents(cents: int | None) -> str | None:
    """Render cents as a plain two-decimal string, e.g. -1250 -> "-12.50"."""
    value = cents_to_decimal(cents)
    return None if value is None else f"{value:.2f}"


def parse_cents(value, field: str) -> int:
    """Strict integer-cents parsing; rejects floats, bools and decimal strings."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lstrip("-").isdigit():
            return int(stripped)
    raise ValidationError(f"{field} must be an integer number of cents")


def read_amount(
    data: dict,
    field: str,
    *,
    required: bool = True,
    allow_negative: bool = False,
    allow_zero: bool = True,
) -> int | None:
    """
    Read a money field from a JSON payload as cents.

    Looks for ``<field>_cents`` first, then ``<field>`` as a decimal amount.
    """
    cents_key = f"{field}_cents"
    if data.get(cents_key) is not None:
        cents = parse_cents(data[cents_key], cents_key)
        label = cents_key
    elif data.get(field) is not None:
        cents = decimal_to_cents(data[field], field)
        label = field
    else:
        if required:
            raise ValidationError(f"{cents_key} or {field} required")
        return None

    if cents < 0 and not allow_negative:
        raise ValidationError(f"{label} cannot be negative")
    if cents == 0 and not allow_zero:
        raise ValidationError(f"{label} must be greater than zero")
    return cents


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage rounded half-up; 100 when there is nothing to measure."""
    if whole <= 0:
        return 100
    value = (Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(value)
