from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from packages.shared.schemas.order_v1 import OrderStatusV1, PaymentMethodV1, PaymentStatusV1
from pydantic import BaseModel, Field
from services.api.app.models.cart import Coupon, LineItem
from services.api.app.services.pricing import money


class DeliveryAddress(BaseModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    country: str = "USA"
    instructions: str | None = None


class ContactInfo(BaseModel):
    phone: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)


class PlaceOrderRequest(BaseModel):
    delivery_address: DeliveryAddress
    contact_info: ContactInfo
    payment_method: PaymentMethodV1
    special_instructions: str | None = Field(default=None, max_length=500)


class TimelineEntry(BaseModel):
    status: OrderStatusV1
    timestamp: datetime
    note: str = ""


class Rating(BaseModel):
    food: int = Field(..., ge=1, le=5)
    delivery: int = Field(..., ge=1, le=5)
    overall: int = Field(..., ge=1, le=5)
    review: str | None = Field(default=None, max_length=500)
    reviewed_at: datetime | None = None


class StatusUpdateRequest(BaseModel):
    # Kept as a plain string so unknown values reach the status check and get a 400.
    status: str
    note: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class RefundRequest(BaseModel):
    amount: Decimal


class RatingRequest(BaseModel):
    food: int = Field(..., ge=1, le=5)
    delivery: int = Field(..., ge=1, le=5)
    overall: int = Field(..., ge=1, le=5)
    review: str | None = Field(default=None, max_length=500)


class OrderPricing(BaseModel):
    subtotal: Decimal
    delivery_fee: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


class OrderOut(BaseModel):
    id: str
    order_number: str
    customer_id: str
    restaurant_id: str

    items: list[LineItem]
    total_items: int

    status: OrderStatusV1
    payment_status: PaymentStatusV1
    payment_method: PaymentMethodV1

    delivery_address: DeliveryAddress
    contact_info: ContactInfo
    special_instructions: str | None = None

    pricing: OrderPricing
    applied_coupon: Coupon | None = None

    estimated_delivery_time: datetime
    actual_delivery_time: datetime | None = None

    timeline: list[TimelineEntry] = Field(default_factory=list)
    rating: Rating | None = None

    cancellation_reason: str | None = None
    refund_amount: Decimal = Decimal("0.00")

    can_be_cancelled: bool
    can_be_modified: bool

    created_at: datetime

    @classmethod
    def from_row(cls, order, *, can_be_cancelled: bool, can_be_modified: bool) -> OrderOut:
        items = [LineItem.model_validate(i) for i in order.items_json or []]
        return cls(
            id=order.id,
            order_number=order.order_number,
            customer_id=order.customer_id,
            restaurant_id=order.restaurant_id,
            items=items,
            total_items=sum(i.quantity for i in items),
            status=order.status,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            delivery_address=DeliveryAddress.model_validate(order.delivery_address_json),
            contact_info=ContactInfo.model_validate(order.contact_info_json),
            special_instructions=order.special_instructions,
            pricing=OrderPricing(
                subtotal=money(order.subtotal),
                delivery_fee=money(order.delivery_fee),
                tax=money(order.tax),
                discount=money(order.discount),
                total=money(order.total),
            ),
            applied_coupon=(
                Coupon.model_validate(order.applied_coupon_json)
                if order.applied_coupon_json
                else None
            ),
            estimated_delivery_time=order.estimated_delivery_time,
            actual_delivery_time=order.actual_delivery_time,
            timeline=[TimelineEntry.model_validate(t) for t in order.timeline_json or []],
            rating=Rating.model_validate(order.rating_json) if order.rating_json else None,
            cancellation_reason=order.cancellation_reason,
            refund_amount=money(order.refund_amount or 0),
            can_be_cancelled=can_be_cancelled,
            can_be_modified=can_be_modified,
            created_at=order.created_at,
        )


class OrderListItem(BaseModel):
    id: str
    order_number: str
    restaurant_id: str
    status: OrderStatusV1
    payment_status: PaymentStatusV1
    total: Decimal
    total_items: int
    created_at: datetime
