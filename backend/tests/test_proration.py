import random
from decimal import Decimal

import pytest

from backoffice.errors import EmptyItemList, ValidationError
from backoffice.services.proration import allocate


def test_discount_follows_item_weight():
    result = allocate([8000, 2000], Decimal("10"))

    assert [a.discount_cents for a in result.items] == [800, 200]
    assert result.discount_cents == 1000
    assert result.total_cents == 9000
    assert [a.total_cents for a in result.items] == [7200, 1800]


def test_surcharge_applies_to_discounted_subtotal():
    result = allocate([10000], Decimal("10"), Decimal("5"))

    assert result.discount_cents == 1000
    assert result.surcharge_cents == 450
    assert result.total_cents == 9450


def test_remainder_lands_on_last_item():
    result = allocate([1, 1, 1], Decimal("50"))

    # 1.5 rounds half-up to 2; earlier items get their share rounded down
    assert result.discount_cents == 2
    assert [a.discount_cents for a in result.items] == [0, 0, 2]


def test_remainder_lands_on_zero_priced_last_item():
    result = allocate([1, 1, 0], Decimal("50"))

    assert [(a.discount_cents, a.total_cents) for a in result.items] == [(0, 1), (0, 1), (1, -1)]
    assert result.total_cents == 1

    # Listing the free item first keeps it at zero
    result = allocate([0, 1, 1], Decimal("50"))
    assert [(a.discount_cents, a.total_cents) for a in result.items] == [(0, 0), (0, 1), (1, 0)]


def test_surcharge_above_one_hundred_percent():
    result = allocate([1000], Decimal("0"), Decimal("150"))
    assert result.surcharge_cents == 1500
    assert result.total_cents == 2500


def test_header_amount_rounds_half_up():
    result = allocate([5], Decimal("10"))
    assert result.discount_cents == 1
    assert result.items[0].discount_cents == 1


def test_zero_subtotals_allocate_nothing():
    result = allocate([0, 0], Decimal("10"), Decimal("10"))
    assert result.total_cents == 0
    assert all(a.discount_cents == 0 and a.surcharge_cents == 0 for a in result.items)


def test_rejects_empty_and_invalid_input():
    with pytest.raises(EmptyItemList):
        allocate([])
    with pytest.raises(ValidationError):
        allocate([100, -1])
    with pytest.raises(ValidationError):
        allocate([100], Decimal("101"))
    with pytest.raises(ValidationError):
        allocate([100], Decimal("0"), Decimal("-1"))


@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_allocations_always_sum_to_header_amounts(seed):
    rng = random.Random(seed)
    for _ in range(200):
        subtotals = [rng.randint(0, 50_000) for _ in range(rng.randint(1, 8))]
        discount = Decimal(rng.randint(0, 10000)) / 100
        surcharge = Decimal(rng.randint(0, 3000)) / 100

        result = allocate(subtotals, discount, surcharge)

        assert sum(a.discount_cents for a in result.items) == result.discount_cents
        assert sum(a.surcharge_cents for a in result.items) == result.surcharge_cents
        assert sum(a.total_cents for a in result.items) == result.total_cents
        assert result.total_cents == sum(subtotals) - result.discount_cents + result.surcharge_cents
        assert all(a.discount_cents >= 0 and a.surcharge_cents >= 0 for a in result.items)
        assert [a.subtotal_cents for a in result.items] == subtotals
