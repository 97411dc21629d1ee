# Overview: Read-side customer due balances, recomputed from orders and payments.

"""
Customer Due Summary

Balances are never cached. Each call recomputes them from the orders table
and the due payments / allocations tables, so any balance can be rebuilt from
the ledger and there is no running total to drift out of step.

- total_due: sum of due amounts (total when unset) over due/partial orders
- total_paid: sum of paid amounts over the same orders
- balance: total_due - total_paid
- credit: sum of unapplied amounts over the customer's payments
"""

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Order, DuePayment, DuePaymentAllocation
from .customer_service import get_customer, list_customers
from .ledger_schemas import DUE_PAYMENT_STATUSES


def _summarize(customer_id: int) -> dict:
    due_expr = func.coalesce(Order.due_amount_cents, Order.total_cents)
    row = db.session.query(
        func.count(Order.id).label("orders_count"),
        func.coalesce(func.sum(due_expr), 0).label("total_due_cents"),
        func.coalesce(func.sum(func.coalesce(Order.paid_amount_cents, 0)), 0).label("total_paid_cents"),
    ).filter(
        Order.customer_id == customer_id,
        Order.payment_status.in_(DUE_PAYMENT_STATUSES),
    ).one()

    credit = db.session.query(
        func.coalesce(func.sum(DuePayment.unapplied_amount_cents), 0)
    ).filter(DuePayment.customer_id == customer_id).scalar()

    total_due = int(row.total_due_cents)
    total_paid = int(row.total_paid_cents)
    return {
        "total_due_cents": total_due,
        "total_paid_cents": total_paid,
        "balance_cents": total_due - total_paid,
        "credit_cents": int(credit),
        "orders_count": int(row.orders_count),
    }


def get_customer_due_summary(customer_id: int) -> dict:
    """Outstanding balance and available credit for one customer."""
    get_customer(customer_id)
    return _summarize(customer_id)


def get_all_customers_due_summary(branch_id: int | None = None) -> list[dict]:
    """
    Summaries for every customer in scope that has an open order or credit.
    Customers with no outstanding history are left out.
    """
    summaries = []
    for customer in list_customers(branch_id):
        summary = _summarize(customer.id)
        if summary["orders_count"] > 0 or summary["credit_cents"] > 0:
            summaries.append({"customer": customer.to_dict(), **summary})
    return summaries


def audit_customer_ledger(customer_id: int) -> list[dict]:
    """
    Rebuild paid and unapplied amounts from allocation rows and compare.

    Returns one entry per discrepancy; an empty list means the stored
    balances match the allocation history.
    """
    get_customer(customer_id)
    discrepancies = []

    allocated_by_order = dict(
        db.session.query(DuePaymentAllocation.order_id, func.sum(DuePaymentAllocation.amount_cents))
        .join(Order, Order.id == DuePaymentAllocation.order_id)
        .filter(Order.customer_id == customer_id)
        .group_by(DuePaymentAllocation.order_id)
        .all()
    )
    orders = db.session.query(Order).filter(Order.customer_id == customer_id).order_by(Order.id).all()
    for order in orders:
        allocated = int(allocated_by_order.get(order.id) or 0)
        paid = order.paid_amount_cents or 0
        if paid != allocated:
            discrepancies.append({
                "kind": "order_paid_amount",
                "order_id": order.id,
                "order_number": order.order_number,
                "stored_cents": paid,
                "reconstructed_cents": allocated,
            })
        if allocated > order.effective_due_cents:
            discrepancies.append({
                "kind": "order_over_allocated",
                "order_id": order.id,
                "order_number": order.order_number,
                "due_cents": order.effective_due_cents,
                "allocated_cents": allocated,
            })

    allocated_by_payment = dict(
        db.session.query(DuePaymentAllocation.payment_id, func.sum(DuePaymentAllocation.amount_cents))
        .join(DuePayment, DuePayment.id == DuePaymentAllocation.payment_id)
        .filter(DuePayment.customer_id == customer_id)
        .group_by(DuePaymentAllocation.payment_id)
        .all()
    )
    payments = db.session.query(DuePayment).filter(DuePayment.customer_id == customer_id).order_by(DuePayment.id).all()
    for payment in payments:
        expected = payment.amount_cents - int(allocated_by_payment.get(payment.id) or 0)
        if payment.unapplied_amount_cents != expected:
            discrepancies.append({
                "kind": "payment_unapplied_amount",
                "payment_id": payment.id,
                "stored_cents": payment.unapplied_amount_cents,
                "reconstructed_cents": expected,
            })

    return discrepancies


def audit_all_customers() -> dict[int, list[dict]]:
    """Audit every customer; only customers with discrepancies are returned."""
    results = {}
    for (customer_id,) in db.session.query(Customer.id).order_by(Customer.id).all():
        found = audit_customer_ledger(customer_id)
        if found:
            results[customer_id] = found
    return results
