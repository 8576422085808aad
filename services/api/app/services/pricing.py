"""Cart and order totals.

Everything here is pure: no database, no clock. Amounts are accumulated with full Decimal
precision and only rounded to cents by ``PricingTotals.rounded()``, which callers apply where
totals are persisted or shown.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from packages.shared.schemas.order_v1 import DiscountTypeV1

CENTS = Decimal("0.01")
ZERO = Decimal("0")
DEFAULT_TAX_RATE = Decimal("0.08")


class PricedCustomization(Protocol):
    additional_price: Decimal


class PricedLine(Protocol):
    unit_price: Decimal
    quantity: int
    customizations: Sequence[PricedCustomization]


class PricedCoupon(Protocol):
    discount: Decimal
    discount_type: DiscountTypeV1


@dataclass(frozen=True, slots=True)
class PricingTotals:
    subtotal: Decimal
    delivery_fee: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal

    @classmethod
    def zero(cls) -> PricingTotals:
        return cls(subtotal=ZERO, delivery_fee=ZERO, tax=ZERO, discount=ZERO, total=ZERO)

    def rounded(self) -> PricingTotals:
        return PricingTotals(
            subtotal=money(self.subtotal),
            delivery_fee=money(self.delivery_fee),
            tax=money(self.tax),
            discount=money(self.discount),
            total=money(self.total),
        )


def money(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def tax_rate() -> Decimal:
    raw = os.getenv("PLATTER_TAX_RATE", "").strip()
    if not raw:
        return DEFAULT_TAX_RATE
    return Decimal(raw)


def line_total(
    unit_price: Decimal, additional_prices: Iterable[Decimal], quantity: int
) -> Decimal:
    return (Decimal(unit_price) + sum((Decimal(p) for p in additional_prices), ZERO)) * quantity


def coupon_discount(subtotal: Decimal, coupon: PricedCoupon | None) -> Decimal:
    if coupon is None:
        return ZERO

    if DiscountTypeV1(coupon.discount_type) == DiscountTypeV1.PERCENTAGE:
        discount = subtotal * (Decimal(coupon.discount) / Decimal("100"))
    else:
        discount = Decimal(coupon.discount)

    return max(ZERO, min(discount, subtotal))


def compute_totals(
    items: Iterable[PricedLine],
    delivery_fee: Decimal,
    coupon: PricedCoupon | None = None,
    rate: Decimal | None = None,
) -> PricingTotals:
    subtotal = sum(
        (
            line_total(
                item.unit_price,
                (c.additional_price for c in item.customizations),
                item.quantity,
            )
            for item in items
        ),
        ZERO,
    )
    fee = Decimal(delivery_fee)
    tax = subtotal * (DEFAULT_TAX_RATE if rate is None else rate)
    discount = coupon_discount(subtotal, coupon)
    total = max(ZERO, subtotal + fee + tax - discount)

    return PricingTotals(subtotal=subtotal, delivery_fee=fee, tax=tax, discount=discount, total=total)
