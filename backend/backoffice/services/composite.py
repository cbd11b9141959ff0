# Overview: Composite (bundle) product expansion into component base-unit consumption.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..errors import CatalogError, ProductNotFound
from ..validation import quantize_qty
from .units import to_base_units


@dataclass(frozen=True)
class BundleComponent:
    component_id: int
    quantity: Decimal  # per one bundle, in `unit`
    unit: str


def expand(product, quantity: Decimal, unit: str | None = None) -> list[tuple[int, Decimal]]:
    """
    Flatten `quantity` of `product` into [(product_id, base_quantity)].

    - Non-composite: a single entry, converted to the product's base unit.
    - Composite: one entry per declared component, in declaration order:
        bundles * per_bundle_quantity (converted to the component's base unit).

    `unit` is the unit the requested quantity is expressed in (defaults to
    the product's base unit).

    Bundles do not recurse: components are validated non-composite when the
    bundle is written, and a composite component found here is an error.
    """
    bundles = to_base_units(product, quantity, unit)
    if not product.is_composite:
        return [(product.id, bundles)]

    component_rows = {c.component_id: c.component for c in getattr(product, "components", [])}

    entries: list[tuple[int, Decimal]] = []
    for component in product.bundle_components():
        component_product = component_rows.get(component.component_id)
        if component_product is None:
            raise ProductNotFound(component.component_id)
        if component_product.is_composite:
            raise CatalogError(
                "Bundle components must not be composite",
                details={"bundle_id": product.id, "component_id": component.component_id},
            )
        per_bundle = to_base_units(component_product, component.quantity, component.unit)
        entries.append((component.component_id, quantize_qty(bundles * per_bundle)))
    return entries
