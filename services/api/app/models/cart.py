from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from packages.shared.schemas.order_v1 import DiscountTypeV1
from pydantic import BaseModel, Field
from services.api.app.services.pricing import line_total, money


class Customization(BaseModel):
    name: str
    selected_options: list[str] = Field(default_factory=list)
    additional_price: Decimal = Field(default=Decimal("0"), ge=0)


class LineItem(BaseModel):
    menu_item_id: str
    name: str
    unit_price: Decimal
    quantity: int = Field(..., ge=1)
    customizations: list[Customization] = Field(default_factory=list)
    special_instructions: str = Field(default="", max_length=200)
    total_price: Decimal

    @classmethod
    def build(
        cls,
        *,
        menu_item_id: str,
        name: str,
        unit_price: Decimal,
        quantity: int,
        customizations: list[Customization],
        special_instructions: str,
    ) -> LineItem:
        return cls(
            menu_item_id=menu_item_id,
            name=name,
            unit_price=money(unit_price),
            quantity=quantity,
            customizations=customizations,
            special_instructions=special_instructions,
            total_price=money(
                line_total(unit_price, (c.additional_price for c in customizations), quantity)
            ),
        )

    def with_quantity(self, quantity: int) -> LineItem:
        return LineItem.build(
            menu_item_id=self.menu_item_id,
            name=self.name,
            unit_price=self.unit_price,
            quantity=quantity,
            customizations=self.customizations,
            special_instructions=self.special_instructions,
        )

    def same_selection(
        self, menu_item_id: str, customizations: list[Customization], special_instructions: str
    ) -> bool:
        return (
            self.menu_item_id == menu_item_id
            and self.customizations == customizations
            and self.special_instructions == special_instructions
        )


class Coupon(BaseModel):
    code: str
    discount: Decimal = Field(..., ge=0)
    discount_type: DiscountTypeV1


class AddCartItemRequest(BaseModel):
    menu_item_id: str
    quantity: int = Field(..., ge=1)
    customizations: list[Customization] = Field(default_factory=list)
    special_instructions: str = Field(default="", max_length=200)


class UpdateCartItemRequest(BaseModel):
    # 0 removes the line.
    quantity: int = Field(..., ge=0)


class ApplyCouponRequest(BaseModel):
    coupon_code: str = Field(..., min_length=1)


class CartOut(BaseModel):
    id: str | None = None
    customer_id: str
    restaurant_id: str | None = None
    items: list[LineItem] = Field(default_factory=list)
    total_items: int = 0

    subtotal: Decimal = Decimal("0.00")
    delivery_fee: Decimal = Decimal("0.00")
    tax: Decimal = Decimal("0.00")
    discount: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")
    applied_coupon: Coupon | None = None

    is_active: bool = True
    version: int = 0
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, cart) -> CartOut:
        items = [LineItem.model_validate(i) for i in cart.items_json or []]
        return cls(
            id=cart.id,
            customer_id=cart.customer_id,
            restaurant_id=cart.restaurant_id,
            items=items,
            total_items=sum(i.quantity for i in items),
            subtotal=money(cart.subtotal),
            delivery_fee=money(cart.delivery_fee),
            tax=money(cart.tax),
            discount=money(cart.discount),
            total=money(cart.total),
            applied_coupon=(
                Coupon.model_validate(cart.applied_coupon_json) if cart.applied_coupon_json else None
            ),
            is_active=cart.is_active,
            version=cart.version,
            updated_at=cart.updated_at,
        )

    @classmethod
    def empty(cls, customer_id: str) -> CartOut:
        return cls(customer_id=customer_id)


class CartValidationOut(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
