# Overview: Unit conversion resolver; pure functions over a product's conversion table.

"""
Conversion table semantics:
- The base unit is the unit stock is tracked in; it is always valid and has factor 1.
- Every other unit must be declared in the product's conversion table.
- factor = base units per one alternate unit.
- price_cents = declared price per one alternate unit. It is NOT derived
  from factor * base price; presentations are priced independently.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..errors import UnknownUnit
from ..validation import quantize_qty


@dataclass(frozen=True)
class UnitConversion:
    factor: Decimal
    price_cents: int


def _conversion(product, unit: str) -> UnitConversion:
    table = product.conversion_table()
    conversion = table.get(unit)
    if conversion is None:
        raise UnknownUnit(product.id, unit)
    return conversion


def is_declared_unit(product, unit: str) -> bool:
    return unit == product.base_unit or unit in product.conversion_table()


def to_base_units(product, quantity: Decimal, unit: str | None = None) -> Decimal:
    """Convert `quantity` of `unit` into the product's base unit."""
    if unit is None or unit == product.base_unit:
        return Decimal(quantity)
    return quantize_qty(Decimal(quantity) * _conversion(product, unit).factor)



def unit_price(product, unit: str | None = None) -> int:
    """Price in cents of one `unit` of the product."""
    if unit is None or unit == product.base_unit:
        return product.price_cents
    return _conversion(product, unit).price_cents
