# Overview: Flask API routes for customers and account opening.

from flask import Blueprint, request, jsonify, current_app

from ..errors import EngineError
from ..services import customer_service, ledger_service
from ..validation import parse_cents
from ..decorators import require_actor


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.post("/")
@require_actor
def create_customer_route():
    """Body: name, email?, phone?, address?, document_id?, open_account?, credit_limit_cents?"""
    try:
        data = request.get_json(silent=True) or {}
        customer = customer_service.create_customer(data)
        return jsonify({"customer": customer.to_dict()}), 201

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>")
def get_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(customer_id)
        return jsonify({"customer": customer.to_dict()}), 200
    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status


@customers_bp.post("/<int:customer_id>/account")
@require_actor
def open_account_route(customer_id: int):
    """Open the customer's current account (idempotent)."""
    try:
        data = request.get_json(silent=True) or {}
        limit = data.get("credit_limit_cents")
        credit_limit = None if limit in (None, "") else parse_cents("credit_limit_cents", limit)
        account = ledger_service.open_account(customer_id, credit_limit_cents=credit_limit)
        return jsonify({"account": account.to_dict()}), 201

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to open account")
        return jsonify({"error": "Internal server error"}), 500
