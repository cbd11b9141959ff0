from decimal import Decimal

import pytest

from backoffice.errors import CatalogError, ConflictError, ProductNotFound, ValidationError
from backoffice.models import Product
from backoffice.services import catalog_service


def test_create_product_with_conversion_table(db_session):
    product = catalog_service.create_product({
        "sku": "RICE",
        "name": "Rice",
        "base_unit": "kg",
        "price_cents": 700,
        "stock": "40",
        "units": {"sack(25kg)": {"factor": "25", "price_cents": 15000}},
    })

    table = product.conversion_table()
    assert set(table) == {"sack(25kg)"}
    assert table["sack(25kg)"].factor == Decimal("25")
    assert table["sack(25kg)"].price_cents == 15000
    assert product.stock == Decimal("40")


def test_conversion_table_accepts_list_form(db_session):
    product = catalog_service.create_product({
        "sku": "OIL",
        "name": "Oil",
        "base_unit": "l",
        "units": [
            {"name": "bottle", "factor": "0.9", "price_cents": 1200},
            {"name": "case", "factor": "10.8", "price_cents": 13000},
        ],
    })
    assert [u.name for u in product.units] == ["bottle", "case"]


def test_base_unit_cannot_be_redeclared(db_session):
    with pytest.raises(CatalogError):
        catalog_service.create_product({
            "sku": "X", "name": "X", "base_unit": "kg",
            "units": {"kg": {"factor": "1", "price_cents": 1}},
        })
    assert db_session.query(Product).count() == 0


def test_duplicate_unit_names_rejected(db_session):
    with pytest.raises(CatalogError):
        catalog_service.create_product({
            "sku": "X", "name": "X",
            "units": [
                {"name": "box", "factor": "6", "price_cents": 100},
                {"name": "box", "factor": "12", "price_cents": 200},
            ],
        })


def test_non_positive_factor_rejected(db_session):
    with pytest.raises(ValidationError):
        catalog_service.create_product({
            "sku": "X", "name": "X",
            "units": {"box": {"factor": "0", "price_cents": 100}},
        })


def test_bundle_definition_validated(db_session, flour, make_bundle):
    bundle = catalog_service.create_product({
        "sku": "KIT",
        "name": "Baking kit",
        "is_composite": True,
        "components": [{"component_id": flour.id, "quantity": "2", "unit": "bag(5kg)"}],
    })
    assert [c.component_id for c in bundle.bundle_components()] == [flour.id]

    inner = make_bundle("INNER", [(flour, 1, "kg")])
    with pytest.raises(CatalogError):
        catalog_service.create_product({
            "sku": "NESTED", "name": "Nested", "is_composite": True,
            "components": [{"component_id": inner.id, "quantity": "1"}],
        })

    with pytest.raises(CatalogError):
        catalog_service.create_product({
            "sku": "BADUNIT", "name": "Bad unit", "is_composite": True,
            "components": [{"component_id": flour.id, "quantity": "1", "unit": "pallet"}],
        })

    with pytest.raises(ProductNotFound):
        catalog_service.create_product({
            "sku": "MISSING", "name": "Missing", "is_composite": True,
            "components": [{"component_id": 9999, "quantity": "1"}],
        })


def test_bundle_needs_components_and_no_stock(db_session, flour):
    with pytest.raises(CatalogError):
        catalog_service.create_product({"sku": "EMPTY", "name": "Empty", "is_composite": True})

    with pytest.raises(CatalogError):
        catalog_service.create_product({
            "sku": "STOCKED", "name": "Stocked", "is_composite": True, "stock": "5",
            "components": [{"component_id": flour.id, "quantity": "1"}],
        })


def test_duplicate_sku_conflicts(db_session, flour):
    with pytest.raises(ConflictError):
        catalog_service.create_product({"sku": "FLOUR", "name": "Flour again"})


def test_required_fields(db_session):
    with pytest.raises(ValidationError) as exc:
        catalog_service.create_product({"name": "No sku"})
    assert exc.value.details == {"missing": ["sku"]}
