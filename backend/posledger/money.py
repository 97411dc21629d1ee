# Overview: Currency helpers; the ledger stores every amount as integer cents.

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from .validation import ValidationError

# $9,999,999.99 keeps every column well inside a 32-bit integer
MAX_AMOUNT_CENTS = 999_999_999

_CENT = Decimal("0.01")


def to_cents(value: Any, field: str = "amount") -> int:
    """
    Convert a decimal currency amount ("60.00", 60, Decimal("60.5")) to cents.

    Floats are accepted only through their string form so 0.1 + 0.2 style
    artifacts are never stored. More than two decimal places is rejected.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a decimal amount")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a decimal amount")
    # Bound first: quantize raises InvalidOperation past the context precision
    if abs(amount) * 100 > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")
    if amount != amount.quantize(_CENT):
        raise ValidationError(f"{field} cannot have more than 2 decimal places")

    return int(amount.quantize(_CENT) * 100)


def cents_from_payload(data: dict, field: str, *, required: bool = True, default: int | None = None) -> int | None:
    """
    Read an amount from a JSON body that may carry `<field>_cents` (integer)
    or `<field>` (decimal). The cents form wins when both are present.
    """
    cents_key = f"{field}_cents"
    if data.get(cents_key) is not None:
        raw = data[cents_key]
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValidationError(f"{cents_key} must be an integer")
        if abs(raw) > MAX_AMOUNT_CENTS:
            raise ValidationError(f"{cents_key} cannot exceed {MAX_AMOUNT_CENTS}")
        return raw
    if data.get(field) is not None:
        return to_cents(data[field], field)
    if required:
        raise ValidationError(f"{field} or {cents_key} is required")
    return default


def format_cents(cents: int | None) -> str | None:
    """Render cents as a fixed two-place decimal string ("60.00")."""
    if cents is None:
        return None
    return str((Decimal(cents) / 100).quantize(_CENT))
