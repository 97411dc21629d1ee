# Overview: Payments UI helper that proposes an oldest-first allocation.

"""
Oldest-first allocation planning.

This is caller-side policy: it only reads, and the due-payment recorder never
calls it. The Payments UI can show the plan, let the cashier edit it, and then
submit the allocations it settled on.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Order
from ..validation import ValidationError
from .customer_service import get_customer
from .ledger_schemas import DUE_PAYMENT_STATUSES


def plan_oldest_first(customer_id: int, amount_cents: int) -> dict:
    """
    Spread amount_cents over the customer's open orders, oldest first.

    Returns {"allocations": [{"order_id", "order_number", "amount_cents"}],
    "allocated_cents", "unapplied_cents"}.
    """
    if amount_cents <= 0:
        raise ValidationError("Payment amount must be positive")
    get_customer(customer_id)

    open_orders = (
        db.session.query(Order)
        .filter(
            Order.customer_id == customer_id,
            Order.payment_status.in_(DUE_PAYMENT_STATUSES),
        )
        .order_by(Order.created_at, Order.id)
        .all()
    )

    remaining = amount_cents
    allocations = []
    for order in open_orders:
        if remaining <= 0:
            break
        outstanding = order.effective_due_cents - (order.paid_amount_cents or 0)
        if outstanding <= 0:
            continue
        applied = min(outstanding, remaining)
        allocations.append({
            "order_id": order.id,
            "order_number": order.order_number,
            "amount_cents": applied,
        })
        remaining -= applied

    return {
        "allocations": allocations,
        "allocated_cents": amount_cents - remaining,
        "unapplied_cents": remaining,
    }
