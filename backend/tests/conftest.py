"""
Pytest fixtures for back-office engine tests.

Provides test database setup, catalog/customer factories, and test client.
"""

from decimal import Decimal

import pytest
from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Customer, Product, ProductComponent, ProductUnit
from backoffice.services import ledger_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOCK_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def actor_headers():
    return {"X-Actor-Id": "7"}


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory: make_product(sku, stock=0, price_cents=0, base_unit="kg", units=None).

    units is {name: (factor, price_cents)}.
    """
    def _make(sku, *, stock="0", price_cents=0, base_unit="kg", units=None):
        product = Product(
            sku=sku,
            name=f"Product {sku}",
            base_unit=base_unit,
            price_cents=price_cents,
            stock=Decimal(str(stock)),
        )
        for name, (factor, unit_price) in (units or {}).items():
            product.units.append(ProductUnit(name=name, factor=Decimal(str(factor)), price_cents=unit_price))
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def make_bundle(db_session):
    """Factory: make_bundle(sku, [(component, quantity, unit)], price_cents=0)."""
    def _make(sku, components, *, price_cents=0):
        bundle = Product(
            sku=sku,
            name=f"Bundle {sku}",
            base_unit="unit",
            price_cents=price_cents,
            stock=Decimal("0"),
            is_composite=True,
        )
        for position, (component, quantity, unit) in enumerate(components):
            bundle.components.append(ProductComponent(
                component_id=component.id,
                quantity=Decimal(str(quantity)),
                unit=unit or component.base_unit,
                position=position,
            ))
        db_session.add(bundle)
        db_session.commit()
        return bundle

    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    """Factory: make_customer(name, with_account=True, credit_limit_cents=None)."""
    def _make(name="Customer", *, with_account=True, credit_limit_cents=None):
        customer = Customer(name=name)
        db_session.add(customer)
        db_session.commit()
        if with_account:
            ledger_service.open_account(customer.id, credit_limit_cents=credit_limit_cents)
        return customer

    return _make


@pytest.fixture(scope='function')
def flour(make_product):
    """100 kg of flour; a 5 kg bag is priced 4000 cents."""
    return make_product("FLOUR", stock="100", price_cents=900, units={"bag(5kg)": (5, 4000)})


@pytest.fixture(scope='function')
def sugar(make_product):
    return make_product("SUGAR", stock="50", price_cents=500)


@pytest.fixture(scope='function')
def stock_of(db_session):
    """Fresh read of a product's stock, bypassing the identity map."""
    def _read(product_id):
        db_session.expire_all()
        return db_session.get(Product, product_id).stock

    return _read
