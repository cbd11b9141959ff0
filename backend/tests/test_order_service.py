import random
from decimal import Decimal

import pytest

from backoffice.errors import (
    CustomerNotFound,
    EmptyItemList,
    InsufficientStock,
    InvalidOrderState,
    OrderItemNotFound,
    ProductNotFound,
    UnknownUnit,
    ValidationError,
)
from backoffice.models import Order, StockMovement
from backoffice.services import order_service
from backoffice.services.lines import LineInput


def _order(db_session, order_id):
    db_session.expire_all()
    return db_session.get(Order, order_id)


def test_create_order_reserves_stock(db_session, flour, stock_of):
    order = order_service.create_order([LineInput(flour.id, Decimal("2"), "bag(5kg)")], user_id=3)

    assert order.status == "pending"
    assert order.total_cents == 8000
    assert [item.stock_applied for item in order.items] == [True]
    assert order.items[0].unit_price_cents == 4000
    assert stock_of(flour.id) == Decimal("90")

    movement = db_session.query(StockMovement).one()
    assert movement.order_id == order.id
    assert movement.reason == "order"


def test_create_order_without_reservation(db_session, flour, stock_of):
    order = order_service.create_order([LineInput(flour.id, Decimal("2"), "bag(5kg)")], reserve_stock=False)

    assert [item.stock_applied for item in order.items] == [False]
    assert stock_of(flour.id) == Decimal("100")


def test_explicit_item_price_overrides_table(db_session, flour):
    order = order_service.create_order([LineInput(flour.id, Decimal("1.5"), "kg", unit_price_cents=1000)])
    assert order.items[0].unit_price_cents == 1000
    assert order.total_cents == 1500


def test_create_order_validation(db_session, flour, stock_of):
    with pytest.raises(EmptyItemList):
        order_service.create_order([])
    with pytest.raises(ProductNotFound):
        order_service.create_order([LineInput(9999, Decimal("1"))])
    with pytest.raises(UnknownUnit):
        order_service.create_order([LineInput(flour.id, Decimal("1"), "pallet")])
    with pytest.raises(CustomerNotFound):
        order_service.create_order([LineInput(flour.id, Decimal("1"))], customer_id=9999)
    with pytest.raises(InsufficientStock):
        order_service.create_order([LineInput(flour.id, Decimal("21"), "bag(5kg)")])

    assert db_session.query(Order).count() == 0
    assert stock_of(flour.id) == Decimal("100")


def test_replace_items_restores_then_reapplies(db_session, flour, sugar, stock_of):
    order = order_service.create_order([LineInput(flour.id, Decimal("2"), "bag(5kg)")])
    assert stock_of(flour.id) == Decimal("90")

    order_service.replace_order_items(order.id, [LineInput(sugar.id, Decimal("3"))])

    assert stock_of(flour.id) == Decimal("100")
    assert stock_of(sugar.id) == Decimal("47")
    updated = _order(db_session, order.id)
    assert [(i.product_id, i.quantity) for i in updated.items] == [(sugar.id, Decimal("3"))]
    assert updated.total_cents == 1500


def test_failed_edit_keeps_previous_items(db_session, flour, sugar, stock_of):
    order = order_service.create_order([LineInput(flour.id, Decimal("2"), "bag(5kg)")])

    with pytest.raises(InsufficientStock):
        order_service.replace_order_items(order.id, [LineInput(sugar.id, Decimal("51"))])

    assert stock_of(flour.id) == Decimal("90")
    assert stock_of(sugar.id) == Decimal("50")
    assert [i.product_id for i in _order(db_session, order.id).items] == [flour.id]


def test_edit_can_reuse_stock_released_by_old_items(db_session, sugar, stock_of):
    order = order_service.create_order([LineInput(sugar.id, Decimal("40"))])

    # Only 10 left on the shelf, but the old 40 come back first
    order_service.replace_order_items(order.id, [LineInput(sugar.id, Decimal("45"))])
    assert stock_of(sugar.id) == Decimal("5")


@pytest.mark.parametrize("seed", [2, 8, 31])
def test_repeated_edits_do_not_drift(db_session, flour, sugar, make_bundle, stock_of, seed):
    rng = random.Random(seed)
    kit = make_bundle("KIT", [(flour, 1, "kg"), (sugar, "0.5", None)])
    choices = [(flour.id, "kg"), (flour.id, "bag(5kg)"), (sugar.id, None), (kit.id, None)]

    def random_items():
        return [
            LineInput(product_id, Decimal(rng.randint(1, 3000)) / 1000, unit)
            for product_id, unit in (rng.choice(choices) for _ in range(rng.randint(1, 3)))
        ]

    order = order_service.create_order(random_items())
    for _ in range(15):
        order_service.replace_order_items(order.id, random_items())
    order_service.cancel_order(order.id)

    assert stock_of(flour.id) == Decimal("100")
    assert stock_of(sugar.id) == Decimal("50")


def test_delete_item_restores_only_that_item(db_session, flour, sugar, stock_of):
    order = order_service.create_order([
        LineInput(flour.id, Decimal("1"), "bag(5kg)"),
        LineInput(sugar.id, Decimal("4")),
    ])
    sugar_item_id = next(i.id for i in order.items if i.product_id == sugar.id)

    updated = order_service.delete_order_item(sugar_item_id)

    assert stock_of(flour.id) == Decimal("95")
    assert stock_of(sugar.id) == Decimal("50")
    assert updated.total_cents == 4000
    assert [i.product_id for i in _order(db_session, order.id).items] == [flour.id]

    with pytest.raises(OrderItemNotFound):
        order_service.delete_order_item(sugar_item_id)


def test_cancel_restores_reserved_stock(db_session, flour, stock_of):
    order = order_service.create_order([LineInput(flour.id, Decimal("3"), "bag(5kg)")])

    cancelled = order_service.cancel_order(order.id, user_id=9)

    assert cancelled.status == "cancelled"
    assert stock_of(flour.id) == Decimal("100")
    with pytest.raises(InvalidOrderState):
        order_service.cancel_order(order.id)
    with pytest.raises(InvalidOrderState):
        order_service.replace_order_items(order.id, [LineInput(flour.id, Decimal("1"))])
    assert stock_of(flour.id) == Decimal("100")


def test_cancel_unreserved_order_touches_no_stock(db_session, flour, stock_of):
    order = order_service.create_order([LineInput(flour.id, Decimal("3"))], reserve_stock=False)
    order_service.cancel_order(order.id)
    assert stock_of(flour.id) == Decimal("100")
    assert db_session.query(StockMovement).count() == 0


def test_status_transitions(db_session, flour):
    order = order_service.create_order([LineInput(flour.id, Decimal("1"))])

    assert order_service.update_order_status(order.id, "processing").status == "processing"
    with pytest.raises(InvalidOrderState):
        order_service.update_order_status(order.id, "pending")
    assert order_service.update_order_status(order.id, "completed").status == "completed"
    with pytest.raises(InvalidOrderState):
        order_service.replace_order_items(order.id, [LineInput(flour.id, Decimal("2"))])

    with pytest.raises(ValidationError):
        order_service.parse_status("invoiced")
