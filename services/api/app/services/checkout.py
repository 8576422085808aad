"""Cart to order conversion.

``place_order`` validates the active cart against the current restaurant and menu, snapshots
it into an ``Order`` and deactivates the cart. The order insert and the cart update commit
together, so either both happen or neither does.

Each checkout carries a key derived from the cart id and version. It is unique on the orders
table, so a retried checkout of the same cart state gets the order that was already placed
instead of a second one. A unique violation on the order number is retried with fresh random
digits.
"""

from __future__ import annotations

import logging
import os
import random
import re
from collections.abc import Iterator
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import uuid4

from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from packages.shared.schemas.order_v1 import OrderStatusV1, PaymentMethodV1, PaymentStatusV1
from services.api.app.db.models import Cart, MenuItem, Order, Restaurant
from services.api.app.models.cart import CartValidationOut
from services.api.app.models.order import ContactInfo, DeliveryAddress
from services.api.app.services.audit import log_event
from services.api.app.services.cart import get_active_cart, load_items, recalculate
from services.api.app.services.clock import Clock
from services.api.app.services.errors import (
    EmptyCartError,
    ItemUnavailableError,
    MinimumOrderNotMetError,
    OrderingError,
    OrderNumberUnavailableError,
    RestaurantInactiveError,
)
from services.api.app.services.orders import generate_order_number, record_status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

MAX_ORDER_NUMBER_ATTEMPTS = 5
DEFAULT_DELIVERY_MINUTES = 45

_DURATION_RE = re.compile(
    r"(\d+(?:\.\d+)?)(?:\s*(?:[-–—]|to)\s*(\d+(?:\.\d+)?))?\s*([a-z]*)"
)


def default_delivery_minutes() -> int:
    raw = os.getenv("PLATTER_DEFAULT_DELIVERY_MINUTES", "").strip()
    if not raw:
        return DEFAULT_DELIVERY_MINUTES
    return int(raw)


def estimate_delivery_minutes(text: str | None) -> int:
    """Minutes from a free-text duration such as "30-45 mins" or "1.5 hours".

    Ranges resolve to their upper bound. Text without a usable number falls back to the
    configured default.
    """

    minutes = Decimal("0")
    for low, high, unit in _DURATION_RE.findall((text or "").lower()):
        value = Decimal(high or low)
        if unit.startswith("h"):
            value *= 60
        minutes += value

    whole = int(minutes.to_integral_value(rounding=ROUND_HALF_UP))
    if whole <= 0:
        return default_delivery_minutes()
    return whole


def checkout_key(cart: Cart) -> str:
    return f"{cart.id}:{cart.version}"


def _blocking_errors(db: Session, cart: Cart | None) -> Iterator[OrderingError]:
    if cart is None or not cart.items_json:
        yield EmptyCartError()
        return

    restaurant = db.get(Restaurant, cart.restaurant_id) if cart.restaurant_id else None
    if restaurant is None or not restaurant.is_active:
        yield RestaurantInactiveError(cart.restaurant_id)

    if restaurant is not None:
        minimum = Decimal(restaurant.minimum_order or 0)
        subtotal = Decimal(cart.subtotal)
        if subtotal < minimum:
            yield MinimumOrderNotMetError(minimum, subtotal)

    for line in load_items(cart):
        menu_item = db.get(MenuItem, line.menu_item_id)
        if (
            menu_item is None
            or not menu_item.is_available
            or menu_item.restaurant_id != cart.restaurant_id
        ):
            yield ItemUnavailableError(line.menu_item_id, line.name)


def _price_warnings(db: Session, cart: Cart) -> list[str]:
    warnings: list[str] = []
    for line in load_items(cart):
        menu_item = db.get(MenuItem, line.menu_item_id)
        if menu_item is None:
            continue
        current = menu_item.final_price
        if current != line.unit_price:
            warnings.append(f"Price of {line.name} changed from ${line.unit_price} to ${current}")
    return warnings


def cart_problems(db: Session, cart: Cart | None) -> CartValidationOut:
    errors = [str(e) for e in _blocking_errors(db, cart)]
    warnings = _price_warnings(db, cart) if cart is not None else []
    return CartValidationOut(valid=not errors, errors=errors, warnings=warnings)


def _order_for_key(db: Session, key: str) -> Order | None:
    return db.query(Order).filter(Order.checkout_key == key).first()


def _previous_checkout(db: Session, customer_id: str) -> Order | None:
    cart = (
        db.query(Cart)
        .filter(Cart.customer_id == customer_id, Cart.is_active.is_(False))
        .order_by(Cart.updated_at.desc())
        .first()
    )
    if cart is None or not cart.version:
        return None
    return _order_for_key(db, f"{cart.id}:{cart.version - 1}")


def _build_order(
    db: Session,
    cart: Cart,
    restaurant: Restaurant,
    key: str,
    delivery_address: DeliveryAddress,
    contact_info: ContactInfo,
    payment_method: PaymentMethodV1,
    special_instructions: str | None,
    *,
    clock: Clock,
    rng: random.Random,
) -> Order:
    now = clock.now()
    minutes = estimate_delivery_minutes(restaurant.estimated_delivery_time)

    order = Order(
        id=uuid4().hex,
        order_number=generate_order_number(clock, rng),
        checkout_key=key,
        customer_id=cart.customer_id,
        restaurant_id=restaurant.id,
        items_json=[i.model_dump(mode="json") for i in load_items(cart)],
        status=OrderStatusV1.PENDING.value,
        payment_status=PaymentStatusV1.PENDING.value,
        payment_method=PaymentMethodV1(payment_method).value,
        delivery_address_json=delivery_address.model_dump(mode="json"),
        contact_info_json=contact_info.model_dump(mode="json"),
        special_instructions=special_instructions,
        subtotal=cart.subtotal,
        delivery_fee=cart.delivery_fee,
        tax=cart.tax,
        discount=cart.discount,
        total=cart.total,
        applied_coupon_json=cart.applied_coupon_json,
        estimated_delivery_time=now + timedelta(minutes=minutes),
        actual_delivery_time=None,
        timeline_json=[],
        rating_json=None,
        cancellation_reason=None,
        refund_amount=Decimal("0"),
        created_at=now,
        updated_at=now,
    )
    record_status(order, OrderStatusV1.PENDING, "Order placed", clock=clock)
    return order


def _deactivate(db: Session, cart: Cart, *, clock: Clock) -> None:
    cart.items_json = []
    cart.restaurant_id = None
    cart.applied_coupon_json = None
    cart.is_active = False
    recalculate(db, cart)
    cart.version = (cart.version or 0) + 1
    cart.updated_at = clock.now()


def place_order(
    db: Session,
    customer_id: str,
    delivery_address: DeliveryAddress,
    contact_info: ContactInfo,
    payment_method: PaymentMethodV1,
    special_instructions: str | None = None,
    *,
    clock: Clock,
    rng: random.Random | None = None,
) -> Order:
    rng = rng or random.Random()

    for attempt in range(1, MAX_ORDER_NUMBER_ATTEMPTS + 1):
        cart = get_active_cart(db, customer_id)
        if cart is None:
            # A retry after a committed checkout finds only the deactivated cart.
            previous = _previous_checkout(db, customer_id)
            if previous is not None:
                logger.info("Checkout for %s already placed as %s", customer_id, previous.order_number)
                return previous
        if cart is None or not cart.items_json:
            raise EmptyCartError()

        key = checkout_key(cart)
        existing = _order_for_key(db, key)
        if existing is not None:
            logger.info("Checkout %s already placed as %s", key, existing.order_number)
            return existing

        for error in _blocking_errors(db, cart):
            logger.warning("Checkout rejected for customer %s: %s", customer_id, error)
            raise error

        restaurant = db.get(Restaurant, cart.restaurant_id)
        order = _build_order(
            db,
            cart,
            restaurant,
            key,
            delivery_address,
            contact_info,
            payment_method,
            special_instructions,
            clock=clock,
            rng=rng,
        )
        db.add(order)
        _deactivate(db, cart, clock=clock)

        log_event(
            db,
            actor_id=customer_id,
            entity_type=EntityTypeV1.ORDER,
            entity_id=order.id,
            event_type=EventTypeV1.ORDER_PLACED,
            event_payload={
                "order_number": order.order_number,
                "cart_id": cart.id,
                "total": str(order.total),
            },
            clock=clock,
        )

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            winner = _order_for_key(db, key)
            if winner is not None:
                logger.info("Checkout %s won by concurrent request as %s", key, winner.order_number)
                return winner
            logger.warning(
                "Order number %s collided (attempt %d/%d)",
                order.order_number,
                attempt,
                MAX_ORDER_NUMBER_ATTEMPTS,
            )
            continue

        logger.info(
            "Order %s placed by %s at restaurant %s total=%s",
            order.order_number,
            customer_id,
            order.restaurant_id,
            order.total,
        )
        return order

    raise OrderNumberUnavailableError(MAX_ORDER_NUMBER_ATTEMPTS)
