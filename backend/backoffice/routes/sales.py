# Overview: Flask API routes for direct sales; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import EngineError
from ..services import invoice_service
from ..services.lines import parse_line_items
from ..validation import parse_percent
from ..decorators import require_actor


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/")
@require_actor
def create_sale_route():
    """
    Create a direct sale (no order).

    Body: items, payments ([{method, amount_cents, account_id?}]),
    customer_id?, document_type? (default remito), discount_percent?, surcharge_percent?
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = invoice_service.create_direct_sale(
            parse_line_items(data.get("items")),
            invoice_service.parse_payment_splits(data.get("payments")),
            discount_percent=parse_percent("discount_percent", data.get("discount_percent")),
            surcharge_percent=parse_percent("surcharge_percent", data.get("surcharge_percent"), cap=False),
            customer_id=data.get("customer_id"),
            document_type=data.get("document_type") or "remito",
            user_id=g.actor_id,
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = invoice_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
