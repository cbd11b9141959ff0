# Overview: Proration allocator; spreads a discount and surcharge across line items to the cent.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from ..errors import EmptyItemList, ValidationError
from ..validation import floor_cents, round_cents

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class Allocation:
    subtotal_cents: int
    discount_cents: int
    surcharge_cents: int

    @property
    def total_cents(self) -> int:
        return self.subtotal_cents - self.discount_cents + self.surcharge_cents


@dataclass(frozen=True)
class ProrationResult:
    subtotal_cents: int
    discount_cents: int
    surcharge_cents: int
    items: tuple[Allocation, ...]

    @property
    def total_cents(self) -> int:
        return self.subtotal_cents - self.discount_cents + self.surcharge_cents


def _spread(total: int, subtotals: Sequence[int], subtotal: int) -> list[int]:
    """
    Running-total allocation: every item but the last gets its proportional
    share rounded down; the last item gets whatever is left, so the shares
    always sum to `total` exactly and the remainder is never negative.
    """
    shares = []
    running = 0
    last = len(subtotals) - 1
    for index, item_subtotal in enumerate(subtotals):
        if index == last:
            shares.append(total - running)
            break
        if subtotal == 0:
            share = 0
        else:
            share = floor_cents(Decimal(total) * Decimal(item_subtotal) / Decimal(subtotal))
        shares.append(share)
        running += share
    return shares


def allocate(subtotals: Sequence[int], discount_percent: Decimal = Decimal("0"), surcharge_percent: Decimal = Decimal("0")) -> ProrationResult:
    """
    Allocate discount_percent / surcharge_percent over item subtotals (cents).

    The surcharge applies to the discounted subtotal. Item order matters:
    the rounding remainder always lands on the last item, even when that
    item's subtotal is 0. A zero-priced last item can therefore carry a
    discount cent and end with a negative total; callers that want free
    items untouched should list them first.

    >>> r = allocate([8000, 2000], Decimal("10"))
    >>> [a.discount_cents for a in r.items]
    [800, 200]
    """
    if not subtotals:
        raise EmptyItemList()
    if any(s < 0 for s in subtotals):
        raise ValidationError("item subtotals must be non-negative")
    discount_percent = Decimal(discount_percent)
    surcharge_percent = Decimal(surcharge_percent)
    if not (0 <= discount_percent <= HUNDRED) or surcharge_percent < 0:
        raise ValidationError("discount must be 0-100 and surcharge non-negative")

    subtotal = sum(subtotals)
    discount_total = round_cents(Decimal(subtotal) * discount_percent / HUNDRED)
    surcharge_total = round_cents(Decimal(subtotal - discount_total) * surcharge_percent / HUNDRED)

    discounts = _spread(discount_total, subtotals, subtotal)
    surcharges = _spread(surcharge_total, subtotals, subtotal)

    return ProrationResult(
        subtotal_cents=subtotal,
        discount_cents=discount_total,
        surcharge_cents=surcharge_total,
        items=tuple(
            Allocation(subtotal_cents=s, discount_cents=d, surcharge_cents=c)
            for s, d, c in zip(subtotals, discounts, surcharges)
        ),
    )
