from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class DuePayment(db.Model):
    """
    One payment event from a credit customer.

    unapplied_amount_cents = amount_cents - sum(allocations), always >= 0.
    It is written once, in the same transaction that records the payment and
    its allocations; that leftover is the customer's credit.
    """
    __tablename__ = "due_payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_due_payments_amount_pos"),
        db.CheckConstraint("unapplied_amount_cents >= 0", name="ck_due_payments_unapplied_nonneg"),
        db.CheckConstraint("unapplied_amount_cents <= amount_cents", name="ck_due_payments_unapplied_le_amount"),
        db.Index("ix_due_payments_customer_date", "customer_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id", ondelete="RESTRICT"), nullable=True, index=True)

    payment_date = db.Column(db.DateTime(timezone=True), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    unapplied_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    reference = db.Column(db.String(128), nullable=True)
    note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("due_payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "branch_id": self.branch_id,
            "payment_date": to_utc_z(self.payment_date),
            "amount_cents": self.amount_cents,
            "unapplied_amount_cents": self.unapplied_amount_cents,
            "payment_method": self.payment_method,
            "reference": self.reference,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }


class DuePaymentAllocation(db.Model):
    """
    Immutable (payment, order, amount) link.

    Created only while recording a payment. The per-order sum of allocations
    never exceeds the order's due amount; that is checked by the recorder
    under the order row lock, not by a constraint.
    """
    __tablename__ = "due_payment_allocations"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_due_allocations_amount_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("due_payments.id", ondelete="RESTRICT"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    payment = db.relationship("DuePayment", backref=db.backref("allocations", lazy=True))
    order = db.relationship("Order", backref=db.backref("allocations", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "payment_id": self.payment_id,
            "order_id": self.order_id,
            "amount_cents": self.amount_cents,
            "created_at": to_utc_z(self.created_at),
        }
