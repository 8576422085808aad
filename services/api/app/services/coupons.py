from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from packages.shared.schemas.order_v1 import DiscountTypeV1
from services.api.app.models.cart import Coupon
from services.api.app.services.errors import InvalidCouponError


@dataclass(frozen=True, slots=True)
class CouponRule:
    discount: Decimal
    discount_type: DiscountTypeV1
    minimum_subtotal: Decimal | None = None
    expires_at: datetime | None = None


# No coupon service yet; codes are a fixed table.
DEFAULT_COUPONS: Mapping[str, CouponRule] = {
    "SAVE10": CouponRule(Decimal("10"), DiscountTypeV1.PERCENTAGE),
    "FLAT50": CouponRule(Decimal("50"), DiscountTypeV1.FIXED),
    "WELCOME20": CouponRule(Decimal("20"), DiscountTypeV1.PERCENTAGE),
    "NEWUSER": CouponRule(Decimal("15"), DiscountTypeV1.PERCENTAGE),
}


def resolve_coupon(
    code: str,
    *,
    subtotal: Decimal,
    now: datetime,
    book: Mapping[str, CouponRule] | None = None,
) -> Coupon:
    normalized = code.strip().upper()
    rule = (DEFAULT_COUPONS if book is None else book).get(normalized)

    if rule is None:
        raise InvalidCouponError(normalized)

    if rule.expires_at is not None and now > rule.expires_at:
        raise InvalidCouponError(normalized, "Coupon code has expired")

    if rule.minimum_subtotal is not None and Decimal(subtotal) < rule.minimum_subtotal:
        raise InvalidCouponError(
            normalized,
            f"Minimum order of ${rule.minimum_subtotal:.2f} required for this coupon",
        )

    return Coupon(code=normalized, discount=rule.discount, discount_type=rule.discount_type)
