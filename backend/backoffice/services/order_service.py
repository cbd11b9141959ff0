# Overview: Service-layer operations for orders; item edits keep stock consistent by reverse-then-reapply.

"""
Order Service

WHY: Orders reserve stock when their items are created. Any change to the
items must undo exactly what was applied before applying the new items,
so stock never drifts through repeated edits.

DESIGN PRINCIPLES:
- Edits restore every old applied item first, then deduct every new item.
  Never computed as a diff (avoids compounding unit-conversion rounding).
- Each public operation is one unit of work: one commit, or a full rollback.
- Only pending/processing orders are editable. invoiced is reached only
  through invoice_service.convert_order_to_invoice.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..errors import CustomerNotFound, InvalidOrderState, OrderItemNotFound, OrderNotFound, ValidationError
from ..extensions import db
from ..models import Customer, Order, OrderItem
from ..models.orders import (
    EDITABLE_ORDER_STATUSES,
    ORDER_STATUS_CANCELLED,
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_PENDING,
    ORDER_STATUS_PROCESSING,
)
from .concurrency import lock_for_update, run_with_retry
from .lines import LineInput, PricedLine, price_lines
from .stock_service import StockLine, apply_deltas, DEDUCT, RESTORE


# Manual status transitions; "invoiced" is set by the converter only
ALLOWED_TRANSITIONS = {
    ORDER_STATUS_PENDING: {ORDER_STATUS_PROCESSING, ORDER_STATUS_COMPLETED},
    ORDER_STATUS_PROCESSING: {ORDER_STATUS_COMPLETED},
}


def get_order(order_id: int, *, lock: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    order = query.first()
    if order is None:
        raise OrderNotFound(order_id)
    return order


def _require_editable(order: Order) -> None:
    if order.status not in EDITABLE_ORDER_STATUSES:
        raise InvalidOrderState(
            f"Order {order.id} is {order.status} and can no longer be changed",
            details={"order_id": order.id, "status": order.status},
        )


def _stock_lines(items) -> list[StockLine]:
    return [StockLine(item.product_id, item.quantity, item.unit) for item in items]


def _add_items(order: Order, priced: list[PricedLine], *, reason: str, user_id: int | None) -> None:
    """Create item rows and, when the order reserves stock, deduct them in one batch."""
    items = [
        OrderItem(
            product_id=line.product_id,
            quantity=line.quantity,
            unit=line.unit,
            unit_price_cents=line.unit_price_cents,
            line_total_cents=line.line_total_cents,
            stock_applied=order.stock_reserved,
        )
        for line in priced
    ]
    if order.stock_reserved:
        apply_deltas(
            [line.stock_line() for line in priced],
            DEDUCT,
            reason=reason,
            order_id=order.id,
            user_id=user_id,
            commit=False,
        )
    order.items.extend(items)


def _restore_items(order: Order, items, *, reason: str, user_id: int | None) -> None:
    applied = [item for item in items if item.stock_applied]
    if applied:
        apply_deltas(
            _stock_lines(applied),
            RESTORE,
            reason=reason,
            order_id=order.id,
            user_id=user_id,
            commit=False,
        )
    for item in applied:
        item.stock_applied = False


def _recalculate_total(order: Order) -> None:
    order.total_cents = sum(item.line_total_cents for item in order.items)


def create_order(
    items: list[LineInput],
    *,
    customer_id: int | None = None,
    user_id: int | None = None,
    delivery_date: datetime | None = None,
    delivery_address: str | None = None,
    notes: str | None = None,
    reserve_stock: bool = True,
) -> Order:
    """Create a pending order; deducts item stock unless reserve_stock is False."""
    def _op():
        if customer_id is not None and db.session.get(Customer, customer_id) is None:
            raise CustomerNotFound(customer_id)
        priced = price_lines(items)

        order = Order(
            customer_id=customer_id,
            status=ORDER_STATUS_PENDING,
            stock_reserved=reserve_stock,
            delivery_date=delivery_date,
            delivery_address=delivery_address,
            notes=notes,
            created_by_user_id=user_id,
        )
        db.session.add(order)
        db.session.flush()

        _add_items(order, priced, reason="order", user_id=user_id)
        _recalculate_total(order)
        db.session.commit()
        return order

    return run_with_retry(_op)


def replace_order_items(order_id: int, items: list[LineInput], *, user_id: int | None = None) -> Order:
    """
    Replace all items of an order.

    Restores stock for every old item, removes them, then creates and
    deducts the new items. If the new items do not fit in stock the whole
    edit is rolled back and the old items remain in place.
    """
    def _op():
        order = get_order(order_id, lock=True)
        _require_editable(order)
        priced = price_lines(items)

        old_items = list(order.items)
        _restore_items(order, old_items, reason="order_edit", user_id=user_id)
        for item in old_items:
            order.items.remove(item)
        db.session.flush()

        _add_items(order, priced, reason="order_edit", user_id=user_id)
        _recalculate_total(order)
        db.session.commit()
        return order

    return run_with_retry(_op)


def delete_order_item(order_item_id: int, *, user_id: int | None = None) -> Order:
    """Remove a single item, restoring only that item's stock."""
    def _op():
        item = db.session.get(OrderItem, order_item_id)
        if item is None:
            raise OrderItemNotFound(order_item_id)
        order = get_order(item.order_id, lock=True)
        _require_editable(order)

        _restore_items(order, [item], reason="order_item_delete", user_id=user_id)
        order.items.remove(item)
        db.session.flush()
        _recalculate_total(order)
        db.session.commit()
        return order

    return run_with_retry(_op)


def update_order_status(order_id: int, status: str) -> Order:
    def _op():
        order = get_order(order_id, lock=True)
        allowed = ALLOWED_TRANSITIONS.get(order.status, set())
        if status not in allowed:
            raise InvalidOrderState(
                f"Cannot move order {order.id} from {order.status} to {status}",
                details={"order_id": order.id, "status": order.status, "requested": status},
            )
        order.status = status
        db.session.commit()
        return order

    return run_with_retry(_op)


def cancel_order(order_id: int, *, user_id: int | None = None) -> Order:
    """Cancel an open order and give back all of its reserved stock."""
    def _op():
        order = get_order(order_id, lock=True)
        _require_editable(order)
        _restore_items(order, list(order.items), reason="order_cancel", user_id=user_id)
        order.status = ORDER_STATUS_CANCELLED
        db.session.commit()
        current_app.logger.info("Order %s cancelled by user %s", order.id, user_id)
        return order

    return run_with_retry(_op)


def parse_status(value) -> str:
    valid = {ORDER_STATUS_PROCESSING, ORDER_STATUS_COMPLETED}
    if value not in valid:
        raise ValidationError("status must be 'processing' or 'completed'", details={"status": value})
    return value
