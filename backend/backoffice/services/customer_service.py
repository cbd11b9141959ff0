# Overview: Service-layer operations for customers and their current accounts.

from __future__ import annotations

from ..errors import CustomerNotFound
from ..extensions import db
from ..models import Customer
from ..validation import parse_bool, parse_cents, require_fields
from .concurrency import run_with_retry
from .ledger_service import open_account


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise CustomerNotFound(customer_id)
    return customer


def create_customer(data: dict) -> Customer:
    """Create a customer; opens a current account when `open_account` is true."""
    require_fields(data, "name")
    credit_limit = data.get("credit_limit_cents")
    if credit_limit not in (None, ""):
        credit_limit = parse_cents("credit_limit_cents", credit_limit)
    else:
        credit_limit = None
    with_account = parse_bool("open_account", data.get("open_account"), default=False)

    def _op():
        customer = Customer(
            name=data["name"].strip(),
            email=data.get("email"),
            phone=data.get("phone"),
            address=data.get("address"),
            document_id=data.get("document_id"),
        )
        db.session.add(customer)
        db.session.commit()
        return customer

    customer = run_with_retry(_op)
    if with_account:
        open_account(customer.id, credit_limit_cents=credit_limit)
    return customer
