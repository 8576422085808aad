from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

Money = Numeric(10, 2)


class Base(DeclarativeBase):
    pass


class Restaurant(Base):
    __tablename__ = "restaurants"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    owner_id: Mapped[str | None] = mapped_column(String, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    delivery_fee: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    minimum_order: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    # Free text as entered by the restaurant, e.g. "30-45 mins" or "1 hour".
    estimated_delivery_time: Mapped[str] = mapped_column(String, nullable=False, default="30-45 mins")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class MenuItem(Base):
    __tablename__ = "menu_items"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    restaurant_id: Mapped[str] = mapped_column(ForeignKey("restaurants.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)

    price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    discount_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0")
    )
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    @property
    def final_price(self) -> Decimal:
        """List price less the item's own discount, rounded to cents."""

        price = Decimal(self.price)
        pct = Decimal(self.discount_percentage or 0)
        if pct > 0:
            price = price * (Decimal("100") - pct) / Decimal("100")
        return price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class Cart(Base):
    __tablename__ = "carts"
    __table_args__ = (
        # At most one active cart per customer.
        Index(
            "uq_carts_active_customer",
            "customer_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    customer_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    restaurant_id: Mapped[str | None] = mapped_column(ForeignKey("restaurants.id"), nullable=True)

    items_json: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    applied_coupon_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    delivery_fee: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    discount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    order_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    # "<cart id>:<cart version>" of the cart this order was placed from.
    checkout_key: Mapped[str] = mapped_column(String, nullable=False, unique=True)

    customer_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    restaurant_id: Mapped[str] = mapped_column(ForeignKey("restaurants.id"), nullable=False, index=True)

    items_json: Mapped[list] = mapped_column(JSON, nullable=False)

    status: Mapped[str] = mapped_column(String, nullable=False, index=True)
    payment_status: Mapped[str] = mapped_column(String, nullable=False)
    payment_method: Mapped[str] = mapped_column(String, nullable=False)

    delivery_address_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    contact_info_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    special_instructions: Mapped[str | None] = mapped_column(String, nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False)
    delivery_fee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    tax: Mapped[Decimal] = mapped_column(Money, nullable=False)
    discount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    applied_coupon_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    estimated_delivery_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    actual_delivery_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    timeline_json: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    rating_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    cancellation_reason: Mapped[str | None] = mapped_column(String, nullable=True)
    refund_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class EventLog(Base):
    __tablename__ = "event_log"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    actor_id: Mapped[str | None] = mapped_column(String, nullable=True)

    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String, nullable=False)
    event_payload_json: Mapped[dict] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
