# Overview: Service-layer operations for due payments; records and allocates customer payments.

"""
Due-Payment Recorder

WHY: A credit customer pays in lump sums that settle one or more open orders.
One payment event becomes one DuePayment row, one allocation row per
(order, amount) the caller chose, and a paid-amount / status update on each
order, all in a single transaction.

RULES:
- Allocations are applied in the order the caller gives them. Oldest-first is
  a Payments UI policy (see allocation_planner), never re-sorted here.
- Rejected before anything is written: payment amount <= 0, allocation amount
  <= 0, allocations summing above the payment amount, unknown customer.
- Rejected under the order row lock (whole transaction rolls back): unknown
  order, order that is not a due order, order owned by another customer, and
  an allocation that would take the order's paid amount above what it owes.
- derive_payment_status() is the only place payment_status becomes
  paid/partial once a balance exists.
- unapplied = amount - sum(allocations) is the customer's credit.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import DuePayment, DuePaymentAllocation, Order, Branch
from ..time_utils import utcnow
from ..validation import ValidationError, NotFoundError
from .concurrency import lock_for_update, run_in_transaction
from .customer_service import get_customer
from .ledger_schemas import (
    PaymentDraft,
    AllocationRequest,
    DUE_PAYMENT_STATUSES,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
)


class DuePaymentError(ValidationError):
    """Raised when a due payment is invalid."""


class AllocationError(DuePaymentError):
    """Raised when an allocation cannot be applied."""


class DuePaymentNotFoundError(NotFoundError):
    """Raised when a due payment id does not resolve."""


def derive_payment_status(paid_cents: int, due_cents: int, current_status: str) -> str:
    """
    Payment status as a pure function of (paid, due).

    paid when paid >= due; partial when 0 < paid < due; otherwise unchanged.
    """
    if paid_cents >= due_cents:
        return PAYMENT_STATUS_PAID
    if paid_cents > 0:
        return PAYMENT_STATUS_PARTIAL
    return current_status


def _validate_amounts(payment: PaymentDraft, allocations: list[AllocationRequest]) -> int:
    if payment.amount_cents <= 0:
        raise DuePaymentError("Payment amount must be positive")

    for allocation in allocations:
        if allocation.amount_cents <= 0:
            raise AllocationError(
                "Allocation amount must be positive",
                details={"order_id": allocation.order_id, "amount_cents": allocation.amount_cents},
            )

    total_allocated = sum(a.amount_cents for a in allocations)
    if total_allocated > payment.amount_cents:
        raise AllocationError(
            "Allocations exceed the payment amount",
            details={
                "amount_cents": payment.amount_cents,
                "total_allocated_cents": total_allocated,
                "excess_cents": total_allocated - payment.amount_cents,
            },
        )
    return total_allocated


def _apply_allocation(payment: DuePayment, allocation: AllocationRequest) -> Order:
    """Insert one allocation row and update the order it targets (row locked)."""
    order = lock_for_update(db.session.query(Order).filter_by(id=allocation.order_id)).populate_existing().first()
    if order is None:
        raise AllocationError(
            f"Order {allocation.order_id} not found",
            details={"order_id": allocation.order_id},
        )
    if order.payment_status not in DUE_PAYMENT_STATUSES:
        raise AllocationError(
            f"Order {order.order_number} has no outstanding balance",
            details={"order_id": order.id, "payment_status": order.payment_status},
        )
    if order.customer_id is not None and order.customer_id != payment.customer_id:
        raise AllocationError(
            f"Order {order.order_number} belongs to another customer",
            details={"order_id": order.id, "customer_id": order.customer_id},
        )

    due_cents = order.effective_due_cents
    paid_cents = order.paid_amount_cents or 0
    new_paid = paid_cents + allocation.amount_cents
    if new_paid > due_cents:
        raise AllocationError(
            f"Allocation exceeds the balance of order {order.order_number}",
            details={
                "order_id": order.id,
                "amount_cents": allocation.amount_cents,
                "remaining_cents": due_cents - paid_cents,
            },
        )

    db.session.add(DuePaymentAllocation(
        payment_id=payment.id,
        order_id=order.id,
        amount_cents=allocation.amount_cents,
    ))

    order.paid_amount_cents = new_paid
    order.payment_status = derive_payment_status(new_paid, due_cents, order.payment_status)
    db.session.flush()
    return order


def record_payment_with_allocations(
    payment: PaymentDraft,
    allocations: list[AllocationRequest] | None = None,
) -> DuePayment:
    """
    Record a customer payment and apply it to the given orders atomically.

    Args:
        payment: the payment event (customer, amount, method, date, ...)
        allocations: (order_id, amount) pairs in application order; defaults
            to payment.allocations

    Returns:
        The committed DuePayment, re-read so unapplied_amount_cents is final.

    Raises:
        DuePaymentError / AllocationError: validation failures (nothing written)
        CustomerNotFoundError: unknown customer
        ConcurrencyConflictError: lock conflicts that outlived the retries
    """
    if allocations is None:
        allocations = payment.allocations
    total_allocated = _validate_amounts(payment, allocations)

    def _op():
        get_customer(payment.customer_id)
        if payment.branch_id is not None and db.session.get(Branch, payment.branch_id) is None:
            raise NotFoundError(f"Branch {payment.branch_id} not found")

        # Inserted with the full amount unapplied, corrected below
        due_payment = DuePayment(
            customer_id=payment.customer_id,
            branch_id=payment.branch_id,
            payment_date=payment.payment_date or utcnow(),
            amount_cents=payment.amount_cents,
            unapplied_amount_cents=payment.amount_cents,
            payment_method=payment.payment_method,
            reference=payment.reference,
            note=payment.note,
        )
        db.session.add(due_payment)
        db.session.flush()

        for allocation in allocations:
            _apply_allocation(due_payment, allocation)

        due_payment.unapplied_amount_cents = payment.amount_cents - total_allocated
        db.session.flush()
        return due_payment.id

    payment_id = run_in_transaction(_op)

    recorded = db.session.get(DuePayment, payment_id, populate_existing=True)
    current_app.logger.info(
        "Due payment %s recorded for customer %s: amount=%s allocated=%s unapplied=%s orders=%d",
        recorded.id, recorded.customer_id, recorded.amount_cents, total_allocated,
        recorded.unapplied_amount_cents, len(allocations),
    )
    return recorded


# =============================================================================
# QUERIES
# =============================================================================

def get_due_payment(payment_id: int) -> DuePayment:
    payment = db.session.get(DuePayment, payment_id)
    if payment is None:
        raise DuePaymentNotFoundError(f"Due payment {payment_id} not found")
    return payment


def get_due_payments(customer_id: int | None = None, branch_id: int | None = None) -> list[DuePayment]:
    """Payments newest payment date first."""
    q = db.session.query(DuePayment)
    if customer_id is not None:
        q = q.filter(DuePayment.customer_id == customer_id)
    if branch_id is not None:
        q = q.filter(DuePayment.branch_id == branch_id)
    return q.order_by(DuePayment.payment_date.desc(), DuePayment.id.desc()).all()


def get_allocations(payment_id: int | None = None, order_id: int | None = None) -> list[DuePaymentAllocation]:
    q = db.session.query(DuePaymentAllocation)
    if payment_id is not None:
        q = q.filter(DuePaymentAllocation.payment_id == payment_id)
    if order_id is not None:
        q = q.filter(DuePaymentAllocation.order_id == order_id)
    return q.order_by(DuePaymentAllocation.id).all()
