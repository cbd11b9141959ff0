# Overview: Line-item input parsing and pricing shared by orders and sales.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..errors import EmptyItemList, ProductNotFound, ValidationError
from ..extensions import db
from ..models import Product
from ..validation import parse_cents, parse_quantity, round_cents
from .stock_service import StockLine
from .units import to_base_units, unit_price


@dataclass(frozen=True)
class LineInput:
    product_id: int
    quantity: Decimal
    unit: str | None = None
    # Explicit price per unit; resolved from the conversion table when None
    unit_price_cents: int | None = None


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    quantity: Decimal
    unit: str
    unit_price_cents: int
    line_total_cents: int

    def stock_line(self) -> StockLine:
        return StockLine(self.product_id, self.quantity, self.unit)


def parse_line_items(items) -> list[LineInput]:
    """Coerce JSON item dicts ({product_id, quantity, unit?, price_cents?})."""
    if not items:
        raise EmptyItemList()
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict) or item.get("product_id") in (None, ""):
            raise ValidationError(f"items[{index}].product_id required")
        price = item.get("unit_price_cents", item.get("price_cents"))
        lines.append(LineInput(
            product_id=item["product_id"],
            quantity=parse_quantity(f"items[{index}].quantity", item.get("quantity")),
            unit=item.get("unit") or None,
            unit_price_cents=None if price in (None, "") else parse_cents(f"items[{index}].unit_price_cents", price),
        ))
    return lines


def price_lines(lines: list[LineInput]) -> list[PricedLine]:
    """
    Resolve unit, unit price and line total for each line, in input order.

    Validates the unit against the product's conversion table (UnknownUnit)
    even when an explicit price is given, so stock conversion cannot fail later.
    """
    if not lines:
        raise EmptyItemList()

    priced = []
    for line in lines:
        product = db.session.get(Product, line.product_id)
        if product is None:
            raise ProductNotFound(line.product_id)
        unit = line.unit or product.base_unit
        to_base_units(product, line.quantity, unit)
        price = line.unit_price_cents if line.unit_price_cents is not None else unit_price(product, unit)
        priced.append(PricedLine(
            product_id=product.id,
            quantity=line.quantity,
            unit=unit,
            unit_price_cents=price,
            line_total_cents=round_cents(Decimal(price) * line.quantity),
        ))
    return priced
