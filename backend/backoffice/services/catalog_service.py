# Overview: Service-layer operations for products; validates conversion tables and bundles at write time.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..errors import CatalogError, ConflictError, ProductNotFound
from ..extensions import db
from ..models import Product, ProductComponent, ProductUnit
from ..validation import FACTOR_EXP, parse_bool, parse_cents, parse_decimal, parse_quantity, quantize_qty, require_fields
from .concurrency import run_with_retry
from .units import is_declared_unit


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return product


def _build_units(base_unit: str, units_data) -> list[ProductUnit]:
    """
    Accepts either a mapping {name: {factor, price_cents}} or a list of
    {name, factor, price_cents}.
    """
    if isinstance(units_data, dict):
        entries = [dict(fields or {}, name=name) for name, fields in units_data.items()]
    else:
        entries = list(units_data or [])

    rows = []
    seen = set()
    for entry in entries:
        name = (entry.get("name") or "").strip()
        if not name:
            raise CatalogError("unit name required")
        if name == base_unit:
            raise CatalogError(
                f"'{name}' is the base unit and cannot appear in the conversion table",
                details={"unit": name},
            )
        if name in seen:
            raise CatalogError(f"duplicate unit '{name}'", details={"unit": name})
        seen.add(name)

        factor = parse_decimal(f"units.{name}.factor", entry.get("factor"), positive=True).quantize(FACTOR_EXP)
        if factor <= 0:
            raise CatalogError(f"factor for '{name}' rounds to zero", details={"unit": name})
        price_cents = parse_cents(f"units.{name}.price_cents", entry.get("price_cents"))
        rows.append(ProductUnit(name=name, factor=factor, price_cents=price_cents))
    return rows


def _build_components(components_data) -> list[ProductComponent]:
    if not components_data:
        raise CatalogError("a composite product needs at least one component")

    rows = []
    for position, entry in enumerate(components_data):
        require_fields(entry, "component_id", "quantity")
        component_id = entry["component_id"]
        component = db.session.get(Product, component_id)
        if component is None:
            raise ProductNotFound(component_id)
        if component.is_composite:
            raise CatalogError(
                "bundle components must not be composite",
                details={"component_id": component_id},
            )
        unit = entry.get("unit") or component.base_unit
        if not is_declared_unit(component, unit):
            raise CatalogError(
                f"unit '{unit}' is not declared for component {component_id}",
                details={"component_id": component_id, "unit": unit},
            )
        rows.append(ProductComponent(
            component_id=component_id,
            quantity=parse_quantity("components.quantity", entry["quantity"]),
            unit=unit,
            position=position,
        ))
    return rows


def create_product(data: dict) -> Product:
    """
    Create a product with its conversion table and, for bundles, its
    component list. Everything is validated before the row is written.
    """
    require_fields(data, "sku", "name")
    base_unit = (data.get("base_unit") or "unit").strip()
    is_composite = parse_bool("is_composite", data.get("is_composite"), default=False)

    def _op():
        units = _build_units(base_unit, data.get("units") or {})
        components = _build_components(data.get("components")) if is_composite else []
        if not is_composite and data.get("components"):
            raise CatalogError("components are only allowed on composite products")

        stock = Decimal("0")
        if data.get("stock") not in (None, ""):
            if is_composite:
                raise CatalogError("composite products do not carry their own stock")
            stock = quantize_qty(parse_decimal("stock", data["stock"]))

        product = Product(
            sku=data["sku"].strip(),
            name=data["name"].strip(),
            base_unit=base_unit,
            price_cents=parse_cents("price_cents", data.get("price_cents", 0)),
            stock=stock,
            is_composite=is_composite,
        )
        product.units = units
        product.components = components
        db.session.add(product)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("SKU already exists", details={"sku": data["sku"]})
        db.session.commit()
        return product

    return run_with_retry(_op)


def list_products(*, active_only: bool = True) -> list[Product]:
    query = db.session.query(Product)
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(Product.id).all()

