# Overview: Flask API routes for orders and order-to-invoice conversion; parses input and returns JSON responses.

# backend/backoffice/routes/orders.py
"""
Order routes.

Item edits go through order_service, which restores the stock of every
previous item before deducting the new ones. Invoicing goes through
invoice_service.convert_order_to_invoice and succeeds at most once per order.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import EngineError, ValidationError
from ..services import invoice_service, order_service
from ..services.lines import parse_line_items
from ..validation import parse_bool, parse_percent
from ..decorators import require_actor
from backoffice.time_utils import parse_iso_datetime


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _parse_delivery_date(value):
    try:
        return parse_iso_datetime(value)
    except (TypeError, ValueError, AttributeError):
        raise ValidationError("delivery_date must be an ISO-8601 datetime")


@orders_bp.post("/")
@require_actor
def create_order_route():
    """
    Create a pending order.

    Body: items ([{product_id, quantity, unit?, unit_price_cents?}]),
    customer_id?, delivery_date?, delivery_address?, notes?, reserve_stock? (default true)
    """
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.create_order(
            parse_line_items(data.get("items")),
            customer_id=data.get("customer_id"),
            user_id=g.actor_id,
            delivery_date=_parse_delivery_date(data.get("delivery_date")),
            delivery_address=data.get("delivery_address"),
            notes=data.get("notes"),
            reserve_stock=parse_bool("reserve_stock", data.get("reserve_stock"), default=True),
        )
        return jsonify({"order": order.to_dict()}), 201

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
        return jsonify({"order": order.to_dict()}), 200
    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status


@orders_bp.put("/<int:order_id>/items")
@require_actor
def replace_items_route(order_id: int):
    """Replace every item of the order. Body: items."""
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.replace_order_items(order_id, parse_line_items(data.get("items")), user_id=g.actor_id)
        return jsonify({"order": order.to_dict()}), 200

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to replace order items")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/items/<int:order_item_id>")
@require_actor
def delete_item_route(order_item_id: int):
    try:
        order = order_service.delete_order_item(order_item_id, user_id=g.actor_id)
        return jsonify({"order": order.to_dict()}), 200

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to delete order item")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/status")
@require_actor
def update_status_route(order_id: int):
    """Body: status ("processing" | "completed")."""
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.update_order_status(order_id, order_service.parse_status(data.get("status")))
        return jsonify({"order": order.to_dict(include_items=False)}), 200

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/cancel")
@require_actor
def cancel_order_route(order_id: int):
    try:
        order = order_service.cancel_order(order_id, user_id=g.actor_id)
        return jsonify({"order": order.to_dict()}), 200

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/invoice")
@require_actor
def invoice_order_route(order_id: int):
    """
    Convert the order into an invoice.

    Body: document_type? (default factura_b), payment_method? (default cash),
    discount_percent?, surcharge_percent?, payments? (required for "mixed")
    """
    try:
        data = request.get_json(silent=True) or {}
        payment_method = data.get("payment_method") or invoice_service.METHOD_CASH
        mixed = None
        if payment_method == invoice_service.METHOD_MIXED:
            mixed = invoice_service.parse_payment_splits(data.get("payments"))

        sale, order = invoice_service.convert_order_to_invoice(
            order_id,
            document_type=data.get("document_type") or "factura_b",
            payment_method=payment_method,
            discount_percent=parse_percent("discount_percent", data.get("discount_percent")),
            surcharge_percent=parse_percent("surcharge_percent", data.get("surcharge_percent"), cap=False),
            mixed_payments=mixed,
            user_id=g.actor_id,
        )
        return jsonify({"sale": sale.to_dict(), "order": order.to_dict(include_items=False)}), 201

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to invoice order")
        return jsonify({"error": "Internal server error"}), 500
