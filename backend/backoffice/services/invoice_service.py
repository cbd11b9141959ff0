# Overview: Order-to-invoice converter and direct sales; the only multi-step orchestration in the engine.

"""
Invoice Service

WHY: Creating a sale touches three shared resources (sale records, the
customer ledger and product stock). They must move together or not at all.

DESIGN PRINCIPLES:
- Validate everything that can fail before writing anything:
    order state -> items -> proration -> payment split -> account/credit
    limit -> stock (rows locked in id order and checked).
- Then write, in order: sale + items + payments, ledger debit/credit,
  stock deduction, order status. One commit at the end; any failure rolls
  back the whole unit of work (run_with_retry).
- Direct sales and order conversion share the same proration, stock and
  ledger code paths, so rounding is identical everywhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from ..errors import (
    AccountNotFound,
    AlreadyInvoiced,
    CreditLimitExceeded,
    CustomerNotFound,
    EmptyItemList,
    InvalidOrderState,
    InvalidPaymentSplit,
    SaleNotFound,
    ValidationError,
)
from ..extensions import db
from ..models import Account, Customer, Order, Sale, SaleItem, SalePayment
from ..models.orders import EDITABLE_ORDER_STATUSES, ORDER_STATUS_INVOICED
from ..models.sales import SALE_STATUS_COMPLETED, SALE_STATUS_INVOICED
from ..validation import parse_cents
from . import ledger_service
from .concurrency import run_with_retry
from .document_service import SALE_DOCUMENT_TYPES, next_document_number
from .ledger_service import Credit, Debit
from .lines import LineInput, PricedLine, price_lines
from .order_service import get_order
from .proration import ProrationResult, allocate
from .stock_service import DEDUCT, StockLine, apply_deltas, check_stock


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

METHOD_CASH = "cash"
METHOD_TRANSFER = "transfer"
METHOD_CARD = "card"
METHOD_CURRENT_ACCOUNT = "current_account"
METHOD_MIXED = "mixed"

SPLIT_METHODS = (METHOD_CASH, METHOD_TRANSFER, METHOD_CARD, METHOD_CURRENT_ACCOUNT)


@dataclass(frozen=True)
class PaymentSplit:
    method: str
    amount_cents: int
    account_id: int | None = None


def parse_payment_splits(payments) -> list[PaymentSplit]:
    """Coerce JSON [{method, amount_cents, account_id?}]."""
    if not payments or not isinstance(payments, list):
        raise InvalidPaymentSplit("At least one payment is required")
    splits = []
    for index, payment in enumerate(payments):
        if not isinstance(payment, dict):
            raise InvalidPaymentSplit(f"payments[{index}] must be an object")
        splits.append(PaymentSplit(
            method=payment.get("method"),
            amount_cents=parse_cents(f"payments[{index}].amount_cents", payment.get("amount_cents")),
            account_id=payment.get("account_id"),
        ))
    return splits


def _validate_splits(splits: list[PaymentSplit], total_cents: int) -> None:
    if not splits:
        raise InvalidPaymentSplit("At least one payment is required")
    for split in splits:
        if split.method not in SPLIT_METHODS:
            raise InvalidPaymentSplit(
                f"Invalid payment method '{split.method}'",
                details={"allowed": list(SPLIT_METHODS)},
            )
        if split.amount_cents < 0:
            raise InvalidPaymentSplit("Payment amounts must be non-negative")
    paid = sum(s.amount_cents for s in splits)
    if paid != total_cents:
        raise InvalidPaymentSplit(
            "Payment amounts must add up to the sale total",
            details={"total_cents": total_cents, "payments_cents": paid},
        )


def _summarize_method(splits: list[PaymentSplit]) -> str:
    methods = {s.method for s in splits if s.amount_cents > 0} or {splits[0].method}
    return methods.pop() if len(methods) == 1 else METHOD_MIXED


# =============================================================================
# PRE-VALIDATION
# =============================================================================

@dataclass(frozen=True)
class LedgerPlan:
    account: Account | None
    on_account_cents: int
    paid_now_cents: int


def _plan_ledger(customer_id: int | None, splits: list[PaymentSplit], total_cents: int) -> LedgerPlan:
    """
    Pick the account the sale posts to and check the credit limit.

    The account is the one named by the splits, else the customer's own.
    The account row stays locked until the unit of work ends.
    """
    named = {s.account_id for s in splits if s.account_id is not None}
    if len(named) > 1:
        raise InvalidPaymentSplit("All payments must use the same account", details={"account_ids": sorted(named)})

    account = None
    if named:
        account = ledger_service.get_account(named.pop(), lock=True)
        if customer_id is not None and account.customer_id != customer_id:
            raise InvalidPaymentSplit(
                "Account does not belong to the sale's customer",
                details={"account_id": account.id, "customer_id": customer_id},
            )
    else:
        existing = ledger_service.account_for_customer(customer_id)
        if existing is not None:
            account = ledger_service.get_account(existing.id, lock=True)

    on_account = sum(s.amount_cents for s in splits if s.method == METHOD_CURRENT_ACCOUNT)
    if on_account and account is None:
        raise AccountNotFound(
            None,
            "Current-account payment requires a customer with an account",
            details={"customer_id": customer_id},
        )

    if account is not None and account.credit_limit_cents is not None and on_account:
        projected = account.balance_cents + on_account
        if projected > account.credit_limit_cents:
            raise CreditLimitExceeded(
                "Sale exceeds the customer's credit limit",
                details={
                    "account_id": account.id,
                    "balance_cents": account.balance_cents,
                    "credit_limit_cents": account.credit_limit_cents,
                    "requested_cents": on_account,
                },
            )

    return LedgerPlan(account=account, on_account_cents=on_account, paid_now_cents=total_cents - on_account)


def _require_document_type(document_type: str) -> None:
    if document_type not in SALE_DOCUMENT_TYPES:
        raise ValidationError(
            f"Unknown document type '{document_type}'",
            details={"allowed": list(SALE_DOCUMENT_TYPES)},
        )


# =============================================================================
# WRITES
# =============================================================================

def _write_sale(
    *,
    priced: list[PricedLine],
    proration: ProrationResult,
    splits: list[PaymentSplit],
    plan: LedgerPlan,
    discount_percent: Decimal,
    surcharge_percent: Decimal,
    customer_id: int | None,
    order_id: int | None,
    document_type: str,
    status: str,
    user_id: int | None,
) -> Sale:
    sale = Sale(
        document_number=next_document_number(
            document_type=document_type,
            point_of_sale=current_app.config.get("POINT_OF_SALE", 1),
        ),
        document_type=document_type,
        status=status,
        customer_id=customer_id,
        account_id=plan.account.id if plan.account else None,
        order_id=order_id,
        subtotal_cents=proration.subtotal_cents,
        discount_percent=discount_percent,
        discount_cents=proration.discount_cents,
        surcharge_percent=surcharge_percent,
        surcharge_cents=proration.surcharge_cents,
        total_cents=proration.total_cents,
        payment_method=_summarize_method(splits),
        created_by_user_id=user_id,
    )
    for position, (line, allocation) in enumerate(zip(priced, proration.items)):
        sale.items.append(SaleItem(
            product_id=line.product_id,
            position=position,
            quantity=line.quantity,
            unit=line.unit,
            unit_price_cents=line.unit_price_cents,
            subtotal_cents=allocation.subtotal_cents,
            discount_cents=allocation.discount_cents,
            surcharge_cents=allocation.surcharge_cents,
            total_cents=allocation.total_cents,
        ))
    for split in splits:
        sale.payments.append(SalePayment(
            method=split.method,
            amount_cents=split.amount_cents,
            account_id=plan.account.id if split.method == METHOD_CURRENT_ACCOUNT and plan.account else split.account_id,
        ))
    db.session.add(sale)
    db.session.flush()
    return sale


def _post_ledger(sale: Sale, plan: LedgerPlan, user_id: int | None) -> None:
    """Debit the full total, then credit whatever was paid on the spot."""
    if plan.account is None or sale.total_cents == 0:
        return
    ledger_service.post(
        plan.account.id,
        Debit(sale.total_cents),
        f"Sale {sale.document_number}",
        sale_id=sale.id,
        user_id=user_id,
        commit=False,
    )
    if plan.paid_now_cents:
        ledger_service.post(
            plan.account.id,
            Credit(plan.paid_now_cents),
            f"Payment for sale {sale.document_number}",
            sale_id=sale.id,
            user_id=user_id,
            commit=False,
        )


def _authorize(sale: Sale) -> None:
    """Hand a finished invoice to the configured tax-authority client, if any."""
    authorizer = current_app.config.get("INVOICE_AUTHORIZER")
    if authorizer is None or not sale.document_type.startswith("factura"):
        return
    sale.external_reference = authorizer(sale)


# =============================================================================
# PUBLIC OPERATIONS
# =============================================================================

def create_direct_sale(
    items: list[LineInput],
    payments: list[PaymentSplit],
    *,
    discount_percent: Decimal = Decimal("0"),
    surcharge_percent: Decimal = Decimal("0"),
    customer_id: int | None = None,
    document_type: str = "remito",
    user_id: int | None = None,
) -> Sale:
    """Sell items straight off the shelf: sale status 'completed'."""
    _require_document_type(document_type)

    def _op():
        if customer_id is not None and db.session.get(Customer, customer_id) is None:
            raise CustomerNotFound(customer_id)
        priced = price_lines(items)
        proration = allocate([line.line_total_cents for line in priced], discount_percent, surcharge_percent)
        _validate_splits(payments, proration.total_cents)
        plan = _plan_ledger(customer_id, payments, proration.total_cents)
        stock_lines = [line.stock_line() for line in priced]
        check_stock(stock_lines)

        sale = _write_sale(
            priced=priced,
            proration=proration,
            splits=payments,
            plan=plan,
            discount_percent=discount_percent,
            surcharge_percent=surcharge_percent,
            customer_id=customer_id,
            order_id=None,
            document_type=document_type,
            status=SALE_STATUS_COMPLETED,
            user_id=user_id,
        )
        _post_ledger(sale, plan, user_id)
        apply_deltas(stock_lines, DEDUCT, reason="sale", sale_id=sale.id, user_id=user_id, commit=False)
        _authorize(sale)
        db.session.commit()
        return sale

    return run_with_retry(_op)


def _order_splits(payment_method: str, mixed_payments, total_cents: int) -> list[PaymentSplit]:
    if payment_method == METHOD_MIXED:
        if not mixed_payments:
            raise InvalidPaymentSplit("Mixed payment requires a breakdown")
        return list(mixed_payments)
    if payment_method not in SPLIT_METHODS:
        raise InvalidPaymentSplit(
            f"Invalid payment method '{payment_method}'",
            details={"allowed": list(SPLIT_METHODS) + [METHOD_MIXED]},
        )
    return [PaymentSplit(method=payment_method, amount_cents=total_cents)]


def convert_order_to_invoice(
    order_id: int,
    *,
    document_type: str = "factura_b",
    payment_method: str = METHOD_CASH,
    discount_percent: Decimal = Decimal("0"),
    surcharge_percent: Decimal = Decimal("0"),
    mixed_payments: list[PaymentSplit] | None = None,
    user_id: int | None = None,
) -> tuple[Sale, Order]:
    """
    Turn a pending/processing order into an invoice exactly once.

    Items whose stock was reserved when the order was created are not
    deducted again; the rest are deducted here.
    """
    _require_document_type(document_type)

    def _op():
        order = get_order(order_id, lock=True)
        existing = db.session.query(Sale).filter_by(order_id=order.id).first()
        if order.status == ORDER_STATUS_INVOICED or existing is not None:
            raise AlreadyInvoiced(order.id, existing.id if existing else None)
        if order.status not in EDITABLE_ORDER_STATUSES:
            raise InvalidOrderState(
                f"Order {order.id} is {order.status} and cannot be invoiced",
                details={"order_id": order.id, "status": order.status},
            )
        if not order.items:
            raise EmptyItemList(f"Order {order.id} has no items")

        order_items = list(order.items)
        priced = [
            PricedLine(
                product_id=item.product_id,
                quantity=Decimal(item.quantity),
                unit=item.unit,
                unit_price_cents=item.unit_price_cents,
                line_total_cents=item.line_total_cents,
            )
            for item in order_items
        ]
        proration = allocate([line.line_total_cents for line in priced], discount_percent, surcharge_percent)
        splits = _order_splits(payment_method, mixed_payments, proration.total_cents)
        _validate_splits(splits, proration.total_cents)
        plan = _plan_ledger(order.customer_id, splits, proration.total_cents)

        pending = [item for item in order_items if not item.stock_applied]
        stock_lines = [StockLine(item.product_id, Decimal(item.quantity), item.unit) for item in pending]
        if stock_lines:
            check_stock(stock_lines)

        sale = _write_sale(
            priced=priced,
            proration=proration,
            splits=splits,
            plan=plan,
            discount_percent=discount_percent,
            surcharge_percent=surcharge_percent,
            customer_id=order.customer_id,
            order_id=order.id,
            document_type=document_type,
            status=SALE_STATUS_INVOICED,
            user_id=user_id,
        )
        _post_ledger(sale, plan, user_id)
        if stock_lines:
            apply_deltas(stock_lines, DEDUCT, reason="sale", order_id=order.id, sale_id=sale.id, user_id=user_id, commit=False)
            for item in pending:
                item.stock_applied = True

        order.status = ORDER_STATUS_INVOICED
        _authorize(sale)
        db.session.commit()
        current_app.logger.info("Order %s invoiced as %s (%s cents)", order.id, sale.document_number, sale.total_cents)
        return sale, order

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise SaleNotFound(sale_id)
    return sale
