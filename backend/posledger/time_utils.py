# Overview: UTC timestamp helpers; the ledger stores naive datetimes that are always UTC.

from __future__ import annotations

from datetime import datetime, timezone


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utcnow() -> datetime:
    """Current time for created_at / completed_at / payment_date stamps."""
    return _as_naive_utc(datetime.now(timezone.utc))


def parse_iso_datetime(value: str | None) -> datetime | None:
    """
    Read a payment or order timestamp sent by a POS terminal.

    Terminals send either local time with an offset or UTC with a "Z"; both
    end up as naive UTC. A value without an offset is already UTC. Blank
    input means "not given". Malformed input raises ValueError.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: datetime | None) -> str | None:
    """Whole-second ISO-8601 in UTC with a "Z" suffix, as the JSON API returns it."""
    if dt is None:
        return None
    stamp = _as_naive_utc(dt).replace(microsecond=0)
    return f"{stamp.isoformat()}Z"
