# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import customer_service
from ..validation import LedgerError, ValidationError, http_status_for, error_body, optional_int, optional_str


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")

# Editable text fields and their column widths
FIELD_MAX_LENGTHS = {"name": 255, "phone": 32, "email": 255, "notes": None}


@customers_bp.get("")
def list_customers_route():
    """Customers of a branch (plus unassigned ones), newest first."""
    try:
        branch_id = optional_int(request.args.get("branch_id"), "branch_id")
        return jsonify([c.to_dict() for c in customer_service.list_customers(branch_id)])
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)


@customers_bp.post("")
def create_customer_route():
    """
    Create a customer.

    Request body:
    {
        "name": "Rahim",        // required
        "phone": "...",         // optional
        "email": "...",         // optional
        "notes": "...",         // optional
        "branch_id": 1          // optional
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        name = optional_str(data.get("name"), "name", max_length=255)
        if not name:
            return jsonify({"error": "name is required"}), 400

        customer = customer_service.create_customer(
            name=name,
            phone=optional_str(data.get("phone"), "phone", max_length=32),
            email=optional_str(data.get("email"), "email", max_length=255),
            notes=optional_str(data.get("notes"), "notes"),
            branch_id=optional_int(data.get("branch_id"), "branch_id"),
        )
        return jsonify(customer.to_dict()), 201
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>")
def get_customer_route(customer_id: int):
    try:
        return jsonify(customer_service.get_customer(customer_id).to_dict())
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)


@customers_bp.patch("/<int:customer_id>")
def update_customer_route(customer_id: int):
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict) or not data:
            raise ValidationError("No fields to update")

        updates = {}
        for key, value in data.items():
            if key in FIELD_MAX_LENGTHS:
                updates[key] = optional_str(value, key, max_length=FIELD_MAX_LENGTHS[key])
            else:
                # Unknown fields are rejected by the service
                updates[key] = value
        customer = customer_service.update_customer(customer_id, **updates)
        return jsonify(customer.to_dict())
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
def delete_customer_route(customer_id: int):
    try:
        customer_service.delete_customer(customer_id)
        return jsonify({"success": True})
    except LedgerError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500
