"""
Concurrent writers against one product and one account.

Uses a file-backed SQLite database so every thread gets its own connection
and the optimistic version checks on Product/Account actually collide.
"""

import threading
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from backoffice import create_app
from backoffice.errors import InsufficientStock
from backoffice.extensions import db
from backoffice.models import Account, Customer, Product
from backoffice.services import ledger_service, stock_service
from backoffice.services.concurrency import run_with_retry
from backoffice.services.ledger_service import Debit
from backoffice.services.stock_service import DEDUCT

THREADS = 4
ROUNDS = 10


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {"connect_args": {"timeout": 30}},
        'LOCK_RETRY_ATTEMPTS': 50,
        'LOCK_RETRY_BACKOFF': 0.005,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _seed(app):
    with app.app_context():
        product = Product(sku="FLOUR", name="Flour", base_unit="kg", price_cents=900, stock=Decimal("100"))
        customer = Customer(name="Busy")
        db.session.add_all([product, customer])
        db.session.commit()
        account = Account(customer_id=customer.id, balance_cents=0)
        db.session.add(account)
        db.session.commit()
        return product.id, account.id


def _run_threads(app, work):
    errors = []

    def _worker():
        with app.app_context():
            try:
                work()
            except Exception as exc:  # collected and asserted on below
                errors.append(exc)

    threads = [threading.Thread(target=_worker) for _ in range(THREADS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=120)
    return errors


def test_parallel_stock_and_ledger_writes_are_not_lost(file_app):
    product_id, account_id = _seed(file_app)

    def work():
        for _ in range(ROUNDS):
            stock_service.apply_delta(product_id, Decimal("1"), "kg", DEDUCT, reason="sale")
            ledger_service.post(account_id, Debit(100), "Parallel sale")

    errors = _run_threads(file_app, work)

    assert errors == []
    with file_app.app_context():
        assert db.session.get(Product, product_id).stock == Decimal("60")
        assert db.session.get(Account, account_id).balance_cents == THREADS * ROUNDS * 100
        result = ledger_service.verify_balance(account_id)
        assert result.balance_cents == THREADS * ROUNDS * 100
        assert result.drift_cents == 0
        assert result.transaction_count == THREADS * ROUNDS
        assert len(stock_service.list_movements(product_id, limit=500)) == THREADS * ROUNDS


def test_parallel_deductions_never_oversell(file_app):
    product_id, _ = _seed(file_app)
    sold = []

    def work():
        for _ in range(ROUNDS):
            try:
                stock_service.apply_delta(product_id, Decimal("3"), "kg", DEDUCT, reason="sale")
                sold.append(3)
            except InsufficientStock:
                pass

    errors = _run_threads(file_app, work)

    assert errors == []
    with file_app.app_context():
        stock = db.session.get(Product, product_id).stock
    # 40 attempts of 3 kg against 100 kg: exactly 33 succeed
    assert sum(sold) == 99
    assert stock == Decimal("1")


# =============================================================================
# RETRY POLICY
# =============================================================================

def test_retries_concurrency_conflicts_until_success(db_session):
    attempts = []

    def op():
        attempts.append(1)
        if len(attempts) < 3:
            raise StaleDataError("version mismatch")
        return "done"

    assert run_with_retry(op, attempts=3, backoff_base=0) == "done"
    assert len(attempts) == 3


def test_gives_up_after_last_attempt(db_session):
    attempts = []

    def op():
        attempts.append(1)
        raise OperationalError("UPDATE products", {}, Exception("database is locked"))

    with pytest.raises(OperationalError):
        run_with_retry(op, attempts=2, backoff_base=0)
    assert len(attempts) == 2


def test_engine_errors_roll_back_without_retry(db_session, sugar, stock_of):
    attempts = []

    def op():
        attempts.append(1)
        db.session.get(Product, sugar.id).stock = Decimal("1")
        db.session.flush()
        raise InsufficientStock([{"product_id": sugar.id}])

    with pytest.raises(InsufficientStock):
        run_with_retry(op, attempts=3, backoff_base=0)
    assert len(attempts) == 1
    assert stock_of(sugar.id) == Decimal("50")
