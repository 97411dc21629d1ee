# Overview: Service-layer operations for customers; lookup/insert used by credit sales.

from __future__ import annotations

from sqlalchemy import case

from ..extensions import db
from ..models import Customer, Order, DuePayment, Branch
from ..validation import NotFoundError, ValidationError, ConflictError
from .concurrency import run_in_transaction


class CustomerNotFoundError(NotFoundError):
    """Raised when a customer id does not resolve."""


class CustomerInUseError(ConflictError):
    """Raised when deleting a customer that still owns ledger rows."""


UPDATABLE_FIELDS = ("name", "phone", "email", "notes")


def _require_branch(branch_id: int | None) -> None:
    if branch_id is None:
        return
    if db.session.get(Branch, branch_id) is None:
        raise NotFoundError(f"Branch {branch_id} not found")


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise CustomerNotFoundError(f"Customer {customer_id} not found")
    return customer


def list_customers(branch_id: int | None = None) -> list[Customer]:
    """Customers of a branch plus unassigned ones, newest first."""
    q = db.session.query(Customer)
    if branch_id is not None:
        q = q.filter(db.or_(Customer.branch_id == branch_id, Customer.branch_id.is_(None)))
    return q.order_by(Customer.created_at.desc(), Customer.id.desc()).all()


def find_customer_by_name(name: str, branch_id: int | None = None) -> Customer | None:
    """
    Exact-name lookup within scope.

    With a branch, matches that branch's customers and shared (branch-less)
    ones, preferring the branch's own. Without a branch, matches any.
    """
    q = db.session.query(Customer).filter(Customer.name == name)
    if branch_id is not None:
        q = q.filter(db.or_(Customer.branch_id == branch_id, Customer.branch_id.is_(None)))
        q = q.order_by(case((Customer.branch_id.is_(None), 1), else_=0))
    return q.order_by(Customer.id).first()


def add_customer(
    *,
    name: str,
    phone: str | None = None,
    email: str | None = None,
    notes: str | None = None,
    branch_id: int | None = None,
) -> Customer:
    """Insert a customer in the current transaction (flush only)."""
    if not name or not name.strip():
        raise ValidationError("Customer name is required")
    _require_branch(branch_id)

    customer = Customer(
        name=name.strip(),
        phone=phone,
        email=email,
        notes=notes,
        branch_id=branch_id,
    )
    db.session.add(customer)
    db.session.flush()
    return customer


def create_customer(**fields) -> Customer:
    return run_in_transaction(lambda: add_customer(**fields))


def update_customer(customer_id: int, **updates) -> Customer:
    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    def _op():
        customer = get_customer(customer_id)
        if "name" in updates:
            name = updates["name"]
            if not name or not str(name).strip():
                raise ValidationError("Customer name cannot be blank")
            updates["name"] = str(name).strip()
        for key, value in updates.items():
            setattr(customer, key, value)
        db.session.flush()
        return customer

    return run_in_transaction(_op)


def delete_customer(customer_id: int) -> None:
    """
    Delete a customer with no ledger history.

    The RESTRICT foreign keys would refuse the delete anyway; checking first
    gives the caller a readable error.
    """
    def _op():
        customer = get_customer(customer_id)
        orders = db.session.query(Order.id).filter_by(customer_id=customer_id).count()
        payments = db.session.query(DuePayment.id).filter_by(customer_id=customer_id).count()
        if orders or payments:
            raise CustomerInUseError(
                "Customer has orders or payments and cannot be deleted",
                details={"orders": orders, "payments": payments},
            )
        db.session.delete(customer)
        db.session.flush()

    run_in_transaction(_op)
