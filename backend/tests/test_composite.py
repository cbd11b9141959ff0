from decimal import Decimal

import pytest

from backoffice.errors import CatalogError, UnknownUnit
from backoffice.services.composite import expand


def test_plain_product_expands_to_itself(flour):
    assert expand(flour, Decimal("2"), "bag(5kg)") == [(flour.id, Decimal("10"))]


def test_bundle_expands_per_component_in_declaration_order(flour, sugar, make_bundle):
    kit = make_bundle("KIT", [(flour, 1, "bag(5kg)"), (sugar, 2, None)])

    entries = expand(kit, Decimal("3"))

    assert entries == [(flour.id, Decimal("15")), (sugar.id, Decimal("6"))]


def test_bundle_with_fractional_component_quantity(flour, make_bundle):
    half = make_bundle("HALF", [(flour, "0.5", "kg")])
    assert expand(half, Decimal("3")) == [(flour.id, Decimal("1.5"))]


def test_nested_bundle_is_rejected(flour, make_bundle):
    inner = make_bundle("INNER", [(flour, 1, "kg")])
    outer = make_bundle("OUTER", [(inner, 1, "unit")])

    with pytest.raises(CatalogError):
        expand(outer, Decimal("1"))


def test_bundle_sold_in_undeclared_unit(flour, make_bundle):
    kit = make_bundle("KIT", [(flour, 1, "kg")])
    with pytest.raises(UnknownUnit):
        expand(kit, Decimal("1"), "box")
