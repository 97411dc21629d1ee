# Overview: Shared error taxonomy and request-payload coercion helpers.

"""
Ledger error taxonomy.

- ValidationError: 400-level input problem, raised before anything is written.
- NotFoundError: 404-level, an id that does not resolve to a row.
- ConflictError: 409-level business rule conflict (e.g. deleting a customer
  that still owns ledger rows).
- ConcurrencyConflictError: 409, lock wait / deadlock / stale version that
  survived every retry. Safe for the caller to retry with the same inputs.
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base class for every error surfaced by the ledger services."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(LedgerError, ValueError):
    """400-level input problem."""


class NotFoundError(LedgerError, LookupError):
    """404-level missing entity."""


class ConflictError(LedgerError):
    """409-level business rule conflict."""


class ConcurrencyConflictError(ConflictError):
    """Lock or version conflict that persisted after retries."""

    retryable = True


def require_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer coercion for ids and quantities.

    Rejects bools, floats and strings with decimals or exponents so that
    "1.5" or 1e3 never silently become an id.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "." in stripped or "e" in stripped.lower():
            raise ValidationError(f"{field} must be an integer")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def optional_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return require_int(value, field, minimum=1)


def optional_str(value: Any, field: str, *, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    if max_length and len(s) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return s


def require_choice(value: Any, field: str, choices) -> str:
    if not isinstance(value, str) or value not in choices:
        raise ValidationError(
            f"Invalid {field}: {value}. Must be one of {sorted(choices)}"
        )
    return value


def http_status_for(exc: LedgerError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ConflictError):
        return 409
    return 400


def error_body(exc: LedgerError) -> dict:
    body = {"error": str(exc), "details": exc.details}
    if getattr(exc, "retryable", False):
        body["retryable"] = True
    return body
