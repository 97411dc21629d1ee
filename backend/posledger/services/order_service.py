# Overview: Service-layer operations for orders; numbering, credit sales and lifecycle.

"""
Order Ledger Service

Every order insert happens in the same transaction as its order-number
increment and its line items, so an order without items (or a consumed
number without an order) is never visible to other transactions.

CREDIT SALES (payment_status="due") are a two-step transaction script:
1. resolve the customer (existing id, or exact-name lookup, creating the
   customer when unseen)
2. allocate the order number, insert the order with due=total / paid=0,
   insert the items
Both steps share one commit; a failure in either rolls back everything,
including the counter increment.

After creation, paid_amount / payment_status belong to the due-payment
recorder; nothing here touches them.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Order, OrderItem, DuePaymentAllocation, Branch
from ..time_utils import utcnow
from ..validation import NotFoundError, ValidationError, ConflictError, require_choice
from .concurrency import lock_for_update, run_in_transaction
from .customer_service import get_customer, find_customer_by_name, add_customer
from .ledger_schemas import (
    OrderDraft,
    LineItemDraft,
    ORDER_STATUSES,
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_CONFIRMED,
    ORDER_STATUS_CANCELLED,
    PAYMENT_STATUS_DUE,
    PAYMENT_STATUS_PARTIAL,
)
from .sequence_service import allocate_order_number


class OrderError(ConflictError):
    """Raised when an order operation conflicts with the order's state."""


class OrderNotFoundError(NotFoundError):
    """Raised when an order id does not resolve."""


# =============================================================================
# CREATION
# =============================================================================

def _resolve_credit_customer(draft: OrderDraft, *, create_missing: bool) -> int | None:
    """Step 1 of a credit sale: find (or create) the owning customer."""
    if draft.customer_id is not None:
        return get_customer(draft.customer_id).id

    if not draft.is_credit_sale:
        return None

    if draft.customer_name and create_missing:
        existing = find_customer_by_name(draft.customer_name, draft.branch_id)
        if existing is not None:
            return existing.id
        customer = add_customer(
            name=draft.customer_name,
            phone=draft.customer_phone,
            branch_id=draft.branch_id,
        )
        current_app.logger.info("Created customer %s for credit sale", customer.id)
        return customer.id

    raise ValidationError("A due order needs a customer_id or customer_name")


def _insert_order(draft: OrderDraft, items: list[LineItemDraft], customer_id: int | None) -> Order:
    """Step 2: number, order row and items, all flushed into the open transaction."""
    if draft.branch_id is not None and db.session.get(Branch, draft.branch_id) is None:
        raise NotFoundError(f"Branch {draft.branch_id} not found")

    order_number = allocate_order_number()

    order = Order(
        order_number=order_number,
        branch_id=draft.branch_id,
        status=draft.status,
        order_type=draft.order_type,
        table_label=draft.table_label,
        subtotal_cents=draft.subtotal_cents,
        discount_cents=draft.discount_cents,
        total_cents=draft.total_cents,
        payment_method=draft.payment_method,
        payment_status=draft.payment_status,
        customer_id=customer_id,
        customer_name=draft.customer_name,
        customer_phone=draft.customer_phone,
        notes=draft.notes,
        paid_amount_cents=0,
    )
    if draft.is_credit_sale:
        order.due_amount_cents = draft.total_cents
    if draft.status == ORDER_STATUS_COMPLETED:
        order.completed_at = utcnow()

    db.session.add(order)
    db.session.flush()

    for item in items:
        db.session.add(OrderItem(
            order_id=order.id,
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
            total_cents=item.total_cents,
        ))
    db.session.flush()

    current_app.logger.info(
        "Order %s created (id=%s, total=%s, payment_status=%s, items=%d)",
        order.order_number, order.id, order.total_cents, order.payment_status, len(items),
    )
    return order


def create_order(draft: OrderDraft) -> Order:
    """
    Create an order with a freshly allocated order number.

    A credit sale must name an existing customer_id here; name-based
    customer resolution is done by create_order_with_items.
    """
    draft.validate([])

    def _op():
        customer_id = _resolve_credit_customer(draft, create_missing=False)
        return _insert_order(draft, [], customer_id)

    return run_in_transaction(_op)


def create_order_with_items(draft: OrderDraft, items: list[LineItemDraft]) -> Order:
    """Create an order and its line items, resolving the credit customer by name if needed."""
    draft.validate(items)

    def _op():
        customer_id = _resolve_credit_customer(draft, create_missing=True)
        return _insert_order(draft, items, customer_id)

    return run_in_transaction(_op)


# =============================================================================
# LIFECYCLE
# =============================================================================

def update_order_status(order_id: int, status: str) -> Order:
    """
    Move an order to another lifecycle status.

    Transitions are caller driven and not otherwise guarded; "completed"
    stamps completed_at. Payment status is never touched here.
    """
    require_choice(status, "order status", ORDER_STATUSES)

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise OrderNotFoundError(f"Order {order_id} not found")

        order.status = status
        if status == ORDER_STATUS_COMPLETED:
            order.completed_at = utcnow()
        db.session.flush()
        return order

    return run_in_transaction(_op)


def accept_order(order_id: int) -> Order:
    """Accept a QR order into the kitchen flow."""
    return update_order_status(order_id, ORDER_STATUS_CONFIRMED)


def reject_order(order_id: int) -> Order:
    return update_order_status(order_id, ORDER_STATUS_CANCELLED)


# =============================================================================
# ITEMS
# =============================================================================

def _has_balance_activity(order: Order) -> bool:
    if order.payment_status == PAYMENT_STATUS_PARTIAL or order.paid_amount_cents:
        return True
    return db.session.query(DuePaymentAllocation.id).filter_by(order_id=order.id).first() is not None


def add_order_item(order_id: int, item: LineItemDraft) -> OrderItem:
    """
    Append a line to an existing order and recompute subtotal and total.

    A credit order's due amount follows the new total, but only while no
    payment has been applied to it.
    """
    item.validate()

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise OrderNotFoundError(f"Order {order_id} not found")
        if order.status in (ORDER_STATUS_COMPLETED, ORDER_STATUS_CANCELLED):
            raise OrderError(f"Cannot add items to a {order.status} order")
        if _has_balance_activity(order):
            raise OrderError("Cannot add items once payments have been applied to the order")

        line = OrderItem(
            order_id=order.id,
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
            total_cents=item.total_cents,
        )
        db.session.add(line)
        db.session.flush()

        subtotal = sum(
            i.total_cents for i in db.session.query(OrderItem).filter_by(order_id=order.id).all()
        )
        if order.discount_cents > subtotal:
            raise ValidationError("discount cannot exceed subtotal")
        order.subtotal_cents = subtotal
        order.total_cents = subtotal - order.discount_cents
        if order.payment_status == PAYMENT_STATUS_DUE:
            order.due_amount_cents = order.total_cents
        db.session.flush()
        return line

    return run_in_transaction(_op)


def get_order_items(order_id: int) -> list[OrderItem]:
    get_order(order_id)
    return db.session.query(OrderItem).filter_by(order_id=order_id).order_by(OrderItem.id).all()


# =============================================================================
# QUERIES AND DELETION
# =============================================================================

def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError(f"Order {order_id} not found")
    return order


def list_orders(
    *,
    branch_id: int | None = None,
    status: str | None = None,
    customer_id: int | None = None,
    payment_status: str | None = None,
) -> list[Order]:
    """Orders newest first, optionally filtered."""
    q = db.session.query(Order)
    if branch_id is not None:
        q = q.filter(Order.branch_id == branch_id)
    if status is not None:
        q = q.filter(Order.status == status)
    if customer_id is not None:
        q = q.filter(Order.customer_id == customer_id)
    if payment_status is not None:
        q = q.filter(Order.payment_status == payment_status)
    return q.order_by(Order.created_at.desc(), Order.id.desc()).all()


def delete_order(order_id: int) -> None:
    """
    Delete an order and its items.

    Refused while any allocation references the order: allocations are
    ledger history and are never orphaned.
    """
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise OrderNotFoundError(f"Order {order_id} not found")

        allocations = db.session.query(DuePaymentAllocation.id).filter_by(order_id=order_id).count()
        if allocations:
            raise OrderError(
                "Order has recorded payment allocations and cannot be deleted",
                details={"allocations": allocations},
            )

        db.session.query(OrderItem).filter_by(order_id=order_id).delete(synchronize_session=False)
        db.session.delete(order)
        db.session.flush()

    run_in_transaction(_op)
