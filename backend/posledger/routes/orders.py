# Overview: Flask API routes for orders; parses input and returns JSON responses.

"""
Order API Routes

- POST creates an order (and its items) in one transaction with a new
  sequential order number
- PATCH /status, /accept, /reject drive the lifecycle
- payment fields are read-only here; due payments change them
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import order_service, sequence_service
from ..services.ledger_schemas import OrderDraft, LineItemDraft
from ..validation import LedgerError, ValidationError, http_status_for, error_body, optional_int


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _order_with_items(order) -> dict:
    return {
        **order.to_dict(),
        "items": [i.to_dict() for i in order_service.get_order_items(order.id)],
    }


@orders_bp.post("")
def create_order_route():
    """
    Create an order.

    Request body:
    {
        "subtotal": "100.00",          (or subtotal_cents; derived from items if omitted)
        "discount": "0.00",
        "status": "completed",
        "payment_method": "cash",
        "payment_status": "due",       (paid | due)
        "customer_name": "Rahim",      (due orders: name or customer_id)
        "branch_id": 1,
        "items": [{"product_id": 3, "product_name": "Tea", "quantity": 2, "price": "10.00"}]
    }

    Returns:
        201: order with items
        400: invalid input
        404: unknown customer / branch
    """
    try:
        data = request.get_json(silent=True) or {}
        raw_items = data.get("items") or []
        if not isinstance(raw_items, list):
            raise ValidationError("items must be an array")

        draft = OrderDraft.from_payload(data)
        items = [LineItemDraft.from_payload(i) for i in raw_items]
        order = order_service.create_order_with_items(draft, items)

        return jsonify(_order_with_items(order)), 201

    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
def list_orders_route():
    """
    List orders, newest first.

    Query params: branch_id, status, customer_id, payment_status
    """
    try:
        orders = order_service.list_orders(
            branch_id=optional_int(request.args.get("branch_id"), "branch_id"),
            status=request.args.get("status") or None,
            customer_id=optional_int(request.args.get("customer_id"), "customer_id"),
            payment_status=request.args.get("payment_status") or None,
        )
        return jsonify([o.to_dict() for o in orders])
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)


@orders_bp.get("/sequence")
def current_sequence_route():
    return jsonify({"last_order_number": sequence_service.current_order_number()})


@orders_bp.post("/next-number")
def next_number_route():
    """Allocate an order number without creating an order (pre-printed tickets)."""
    try:
        return jsonify({"order_number": sequence_service.next_order_number()}), 201
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to allocate order number")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
        return jsonify(_order_with_items(order))
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)


@orders_bp.get("/<int:order_id>/items")
def get_order_items_route(order_id: int):
    try:
        return jsonify([i.to_dict() for i in order_service.get_order_items(order_id)])
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)


@orders_bp.post("/<int:order_id>/items")
def add_order_item_route(order_id: int):
    """Add a line and recompute the order totals."""
    try:
        item = LineItemDraft.from_payload(request.get_json(silent=True) or {})
        line = order_service.add_order_item(order_id, item)
        return jsonify(line.to_dict()), 201
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to add item to order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<int:order_id>/status")
def update_order_status_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not status:
            return jsonify({"error": "Status is required"}), 400

        order = order_service.update_order_status(order_id, status)
        return jsonify(order.to_dict())
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<int:order_id>/accept")
def accept_order_route(order_id: int):
    try:
        return jsonify(order_service.accept_order(order_id).to_dict())
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to accept order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<int:order_id>/reject")
def reject_order_route(order_id: int):
    try:
        return jsonify(order_service.reject_order(order_id).to_dict())
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to reject order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>")
def delete_order_route(order_id: int):
    try:
        order_service.delete_order(order_id)
        return jsonify({"success": True})
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500
