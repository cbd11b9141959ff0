import pytest

from backoffice.errors import CustomerNotFound, ValidationError
from backoffice.services import customer_service, ledger_service


def test_create_customer_with_account(db_session):
    customer = customer_service.create_customer({
        "name": "  Almacen Sur ",
        "email": "sur@example.com",
        "open_account": True,
        "credit_limit_cents": "250000",
    })

    assert customer.name == "Almacen Sur"
    account = ledger_service.account_for_customer(customer.id)
    assert account.credit_limit_cents == 250000
    assert account.balance_cents == 0
    assert customer_service.get_customer(customer.id).to_dict()["account_id"] == account.id


def test_create_customer_without_account(db_session):
    customer = customer_service.create_customer({"name": "Walk-in"})
    assert ledger_service.account_for_customer(customer.id) is None


def test_create_customer_validation(db_session):
    with pytest.raises(ValidationError):
        customer_service.create_customer({"email": "nobody@example.com"})
    with pytest.raises(ValidationError):
        customer_service.create_customer({"name": "Bad limit", "credit_limit_cents": "-5"})
    with pytest.raises(CustomerNotFound):
        customer_service.get_customer(999)
