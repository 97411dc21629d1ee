from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Order(db.Model):
    """
    One sale or in-progress ticket.

    LIFECYCLE (caller driven): draft -> confirmed / qr-pending -> completed,
    or any state -> cancelled.

    CREDIT SALES: when payment_status is "due" at creation, customer_id is set,
    due_amount_cents = total_cents and paid_amount_cents = 0. From then on only
    the due-payment recorder changes paid_amount_cents / payment_status.

    All amounts in cents. total = subtotal - discount, never negative.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.CheckConstraint("subtotal_cents >= 0", name="ck_orders_subtotal_nonneg"),
        db.CheckConstraint("discount_cents >= 0", name="ck_orders_discount_nonneg"),
        db.CheckConstraint("total_cents >= 0", name="ck_orders_total_nonneg"),
        db.CheckConstraint("total_cents = subtotal_cents - discount_cents", name="ck_orders_total_balance"),
        db.CheckConstraint("paid_amount_cents >= 0", name="ck_orders_paid_nonneg"),
        db.Index("ix_orders_customer_payment_status", "customer_id", "payment_status"),
        db.Index("ix_orders_branch_status_created", "branch_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-facing sequential number printed on receipts ("1", "2", ...)
    order_number = db.Column(db.String(32), nullable=False)

    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id", ondelete="RESTRICT"), nullable=True, index=True)
    status = db.Column(db.String(16), nullable=False, default="draft", index=True)
    order_type = db.Column(db.String(32), nullable=True)
    table_label = db.Column(db.String(32), nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(32), nullable=True)
    payment_status = db.Column(db.String(16), nullable=False, default="paid", index=True)  # paid, due, partial
    due_amount_cents = db.Column(db.Integer, nullable=True)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="RESTRICT"), nullable=True, index=True)
    # What the cashier typed; the customer row is resolved from it
    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    branch = db.relationship("Branch", backref=db.backref("orders", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def effective_due_cents(self) -> int:
        """Amount owed on the order; falls back to total when due is unset."""
        return self.due_amount_cents if self.due_amount_cents is not None else self.total_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "branch_id": self.branch_id,
            "status": self.status,
            "order_type": self.order_type,
            "table_label": self.table_label,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "due_amount_cents": self.due_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "version_id": self.version_id,
        }


class OrderItem(db.Model):
    """Line item on an order. product_id points into the external catalogue."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_pos"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_order_items_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=True, index=True)
    product_name = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
        }
