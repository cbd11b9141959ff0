# Overview: Flask API routes for the product catalog and stock; parses input and returns JSON responses.

# backend/backoffice/routes/products.py
from flask import Blueprint, request, jsonify, g, current_app

from ..errors import EngineError
from ..services import catalog_service, stock_service
from ..validation import parse_decimal, parse_int
from ..decorators import require_actor


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.post("/")
@require_actor
def create_product_route():
    """
    Create a product.

    Body: sku, name, base_unit?, price_cents?, stock?,
    units? ({name: {factor, price_cents?}} or a list of {name, factor, price_cents?}),
    is_composite?, components? ([{component_id, quantity, unit?}])
    """
    try:
        data = request.get_json(silent=True) or {}
        product = catalog_service.create_product(data)
        return jsonify({"product": product.to_dict()}), 201

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/")
def list_products_route():
    active_only = request.args.get("include_inactive", "false").lower() != "true"
    products = catalog_service.list_products(active_only=active_only)
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
        return jsonify({"product": product.to_dict()}), 200
    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status


@products_bp.post("/<int:product_id>/stock")
@require_actor
def adjust_stock_route(product_id: int):
    """
    Manual stock adjustment.

    Body: quantity (signed; negative removes stock), unit?, note?
    Composite products adjust their components.
    """
    try:
        data = request.get_json(silent=True) or {}
        quantity = parse_decimal("quantity", data.get("quantity"), allow_zero=False, allow_negative=True)
        new_stock = stock_service.adjust_stock(
            product_id,
            quantity,
            data.get("unit") or None,
            user_id=g.actor_id,
            note=data.get("note"),
        )
        return jsonify({"stock": {str(pid): str(value) for pid, value in new_stock.items()}}), 200

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/movements")
def list_movements_route(product_id: int):
    try:
        limit = parse_int("limit", request.args.get("limit", "100"), minimum=1)
        movements = stock_service.list_movements(product_id, limit=min(limit, 500))
        return jsonify({"movements": [m.to_dict() for m in movements]}), 200
    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status

