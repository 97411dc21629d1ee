# Overview: Flask API routes for due payments and customer balances.

"""
Due Management API Routes

DESIGN:
- POST /payments records a payment and its allocations atomically; an
  allocation total above the payment amount is a 400 with the excess in
  "details", so the Payments UI can correct it before resubmitting
- summaries are recomputed from the ledger on every request
- allocation-plan proposes an oldest-first split without writing anything
"""

from flask import Blueprint, request, jsonify, current_app

from ..money import to_cents
from ..services import due_payment_service, due_summary_service, allocation_planner
from ..services.due_payment_service import DuePaymentError
from ..services.ledger_schemas import PaymentDraft
from ..validation import LedgerError, ValidationError, http_status_for, error_body, optional_int


due_bp = Blueprint("due", __name__, url_prefix="/api/due")


# =============================================================================
# PAYMENTS
# =============================================================================

@due_bp.get("/payments")
def list_due_payments_route():
    """Query params: customer_id, branch_id."""
    try:
        payments = due_payment_service.get_due_payments(
            customer_id=optional_int(request.args.get("customer_id"), "customer_id"),
            branch_id=optional_int(request.args.get("branch_id"), "branch_id"),
        )
        return jsonify([p.to_dict() for p in payments])
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)


@due_bp.post("/payments")
def record_due_payment_route():
    """
    Record a customer payment and allocate it to open orders.

    Request body:
    {
        "customer_id": 7,
        "amount": "100.00",                 (or amount_cents)
        "payment_method": "cash",
        "payment_date": "2026-10-17T10:00:00Z",   (optional, defaults to now)
        "reference": "...", "note": "...", "branch_id": 1,
        "allocations": [
            {"order_id": 11, "amount": "30.00"},
            {"order_id": 12, "amount": "70.00"}
        ]
    }

    Returns:
        201: the payment, with unapplied_amount_cents and its allocations
        400: invalid input, over-allocation, unknown order
        404: unknown customer
        409: ledger busy (retryable)
    """
    try:
        draft = PaymentDraft.from_payload(request.get_json(silent=True) or {})
        payment = due_payment_service.record_payment_with_allocations(draft)

        allocations = due_payment_service.get_allocations(payment_id=payment.id)
        return jsonify({
            **payment.to_dict(),
            "allocations": [a.to_dict() for a in allocations],
        }), 201

    except DuePaymentError as e:
        current_app.logger.info("Rejected due payment: %s %s", e, e.details)
        return jsonify(error_body(e)), http_status_for(e)
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@due_bp.get("/payments/<int:payment_id>")
def get_due_payment_route(payment_id: int):
    try:
        payment = due_payment_service.get_due_payment(payment_id)
        return jsonify(payment.to_dict())
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)


@due_bp.get("/payments/<int:payment_id>/allocations")
def get_payment_allocations_route(payment_id: int):
    try:
        due_payment_service.get_due_payment(payment_id)
        allocations = due_payment_service.get_allocations(payment_id=payment_id)
        return jsonify([a.to_dict() for a in allocations])
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)


# =============================================================================
# BALANCES
# =============================================================================

@due_bp.get("/customers-summary")
def all_customers_summary_route():
    try:
        branch_id = optional_int(request.args.get("branch_id"), "branch_id")
        return jsonify(due_summary_service.get_all_customers_due_summary(branch_id))
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to fetch customers summary")
        return jsonify({"error": "Failed to fetch customers summary"}), 500


@due_bp.get("/customers/<int:customer_id>/summary")
def customer_summary_route(customer_id: int):
    try:
        return jsonify(due_summary_service.get_customer_due_summary(customer_id))
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)


@due_bp.get("/customers/<int:customer_id>/allocation-plan")
def allocation_plan_route(customer_id: int):
    """Query params: amount (decimal) or amount_cents."""
    try:
        if request.args.get("amount_cents"):
            amount_cents = optional_int(request.args.get("amount_cents"), "amount_cents")
        elif request.args.get("amount"):
            amount_cents = to_cents(request.args.get("amount"))
        else:
            raise ValidationError("amount or amount_cents is required")
        return jsonify(allocation_planner.plan_oldest_first(customer_id, amount_cents))
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)


@due_bp.get("/customers/<int:customer_id>/audit")
def customer_audit_route(customer_id: int):
    try:
        discrepancies = due_summary_service.audit_customer_ledger(customer_id)
        return jsonify({
            "customer_id": customer_id,
            "consistent": not discrepancies,
            "discrepancies": discrepancies,
        })
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)
