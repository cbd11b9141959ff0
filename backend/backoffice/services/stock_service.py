# Overview: Stock mutator; the only code path that changes Product.stock.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ..errors import InsufficientStock, ProductNotFound, ValidationError
from ..extensions import db
from ..models import Product, StockMovement
from ..validation import quantize_qty
from backoffice.time_utils import utcnow
from .composite import expand
from .concurrency import lock_rows, run_with_retry
"""
Stock Invariants (authoritative)

- Product.stock is in base-unit terms and is never negative after a commit.
- Every call is all-or-nothing: the full set of deltas (including every
  component reached through bundle expansion) is computed and checked
  before any row is written. A shortage on any product fails the whole call.
- All touched product rows are locked in ascending id order for the
  read -> compute -> write sequence.
- Deduction (sign -1) happens when order/sale items are created.
  Restoration (sign +1) happens when items are deleted, orders are edited
  (old items restored before new items are deducted) or cancelled.
- Each touched product gets one StockMovement row.
"""

DEDUCT = -1
RESTORE = 1


@dataclass(frozen=True)
class StockLine:
    """A quantity of a product expressed in any declared unit."""
    product_id: int
    quantity: Decimal
    unit: str | None = None


def _get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return product


def plan_deltas(lines: Iterable[StockLine], sign: int) -> dict[int, Decimal]:
    """
    Expand lines into signed base-unit deltas per product id.

    Pure with respect to stock: reads products and bundle definitions only.
    Raises ProductNotFound / UnknownUnit before anything is locked.
    """
    if sign not in (DEDUCT, RESTORE):
        raise ValidationError("sign must be -1 or +1")

    deltas: dict[int, Decimal] = {}
    for line in lines:
        product = _get_product(line.product_id)
        for component_id, base_qty in expand(product, Decimal(line.quantity), line.unit):
            deltas[component_id] = deltas.get(component_id, Decimal("0")) + sign * base_qty
    return deltas


def _lock_and_check(deltas: dict[int, Decimal]) -> tuple[dict[int, Product], dict[int, Decimal]]:
    products = lock_rows(Product, deltas.keys())

    new_stock: dict[int, Decimal] = {}
    shortages = []
    for product_id in sorted(deltas):
        product = products.get(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        current = Decimal(product.stock)
        candidate = quantize_qty(current + deltas[product_id])
        if deltas[product_id] < 0 and candidate < 0:
            shortages.append({
                "product_id": product_id,
                "requested_quantity": str(-deltas[product_id]),
                "on_hand": str(current),
                "unit": product.base_unit,
            })
        new_stock[product_id] = candidate

    if shortages:
        raise InsufficientStock(shortages)
    return products, new_stock


def check_stock(lines: Iterable[StockLine]) -> None:
    """
    Verify that deducting `lines` would succeed, without writing.

    Locks the product rows (held until the caller's transaction ends) so a
    later apply_deltas in the same transaction cannot fail on stock.
    """
    deltas = plan_deltas(lines, DEDUCT)
    _lock_and_check(deltas)


def _apply_locked(
    lines: Iterable[StockLine],
    sign: int,
    *,
    reason: str,
    order_id: int | None = None,
    sale_id: int | None = None,
    user_id: int | None = None,
    note: str | None = None,
) -> dict[int, Decimal]:
    deltas = plan_deltas(lines, sign)
    products, new_stock = _lock_and_check(deltas)

    now = utcnow()
    for product_id in sorted(new_stock):
        if deltas[product_id] == 0:
            continue
        products[product_id].stock = new_stock[product_id]
        db.session.add(StockMovement(
            product_id=product_id,
            quantity_delta=quantize_qty(deltas[product_id]),
            stock_after=new_stock[product_id],
            reason=reason,
            order_id=order_id,
            sale_id=sale_id,
            user_id=user_id,
            note=note,
            occurred_at=now,
        ))
    db.session.flush()
    return new_stock


def apply_deltas(
    lines: Iterable[StockLine],
    sign: int,
    *,
    reason: str,
    order_id: int | None = None,
    sale_id: int | None = None,
    user_id: int | None = None,
    note: str | None = None,
    commit: bool = True,
) -> dict[int, Decimal]:
    """
    Apply `sign` * quantity for every line, all-or-nothing.

    Returns {product_id: new_stock} for every product touched (components,
    for bundles). With commit=False the caller owns the transaction; this
    is how the invoice/order services fold stock changes into their own
    unit of work.
    """
    lines = list(lines)
    kwargs = dict(reason=reason, order_id=order_id, sale_id=sale_id, user_id=user_id, note=note)
    if not commit:
        return _apply_locked(lines, sign, **kwargs)

    def _op():
        result = _apply_locked(lines, sign, **kwargs)
        db.session.commit()
        return result

    return run_with_retry(_op)


def apply_delta(product_id: int, quantity: Decimal, unit: str | None, sign: int, **kwargs) -> dict[int, Decimal]:
    """Single-line form of apply_deltas."""
    return apply_deltas([StockLine(product_id, Decimal(quantity), unit)], sign, **kwargs)


def deduct(lines: Iterable[StockLine], **kwargs) -> dict[int, Decimal]:
    return apply_deltas(lines, DEDUCT, **kwargs)


def restore(lines: Iterable[StockLine], **kwargs) -> dict[int, Decimal]:
    return apply_deltas(lines, RESTORE, **kwargs)


def adjust_stock(product_id: int, quantity: Decimal, unit: str | None, *, user_id: int | None = None, note: str | None = None) -> dict[int, Decimal]:
    """
    Manual correction (receiving, shrinkage). Positive quantity adds stock,
    negative removes it and may not take stock below zero.
    """
    quantity = Decimal(quantity)
    if quantity == 0:
        raise ValidationError("quantity must be non-zero")
    sign = RESTORE if quantity > 0 else DEDUCT
    return apply_delta(product_id, abs(quantity), unit, sign, reason="adjustment", user_id=user_id, note=note)


def list_movements(product_id: int, limit: int = 100) -> list[StockMovement]:
    _get_product(product_id)
    return (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )
