"""Customer carts.

A cart stages line items against exactly one restaurant. Every mutating call recomputes the
totals and commits before returning, so callers never see stale totals.

Adding an item from another restaurant empties the cart (and drops its coupon) before the new
item goes in. Carts are soft-deleted: emptying or checking out flips ``is_active`` and the next
add starts a fresh cart.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import uuid4

from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from services.api.app.db.models import Cart, MenuItem, Restaurant
from services.api.app.models.cart import Coupon, Customization, LineItem
from services.api.app.services.audit import log_event
from services.api.app.services.clock import Clock
from services.api.app.services.errors import (
    EmptyCartError,
    InvalidIndexError,
    ItemUnavailableError,
    RestaurantInactiveError,
)
from services.api.app.services.pricing import ZERO, PricingTotals, compute_totals, tax_rate
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def load_items(cart: Cart) -> list[LineItem]:
    return [LineItem.model_validate(i) for i in cart.items_json or []]


def _store_items(cart: Cart, items: list[LineItem]) -> None:
    # Reassign so SQLAlchemy sees the JSON column change.
    cart.items_json = [i.model_dump(mode="json") for i in items]


def _applied_coupon(cart: Cart) -> Coupon | None:
    if not cart.applied_coupon_json:
        return None
    return Coupon.model_validate(cart.applied_coupon_json)


def get_active_cart(db: Session, customer_id: str) -> Cart | None:
    return (
        db.query(Cart)
        .filter(Cart.customer_id == customer_id, Cart.is_active.is_(True))
        .first()
    )


def get_or_create_cart(db: Session, customer_id: str, *, clock: Clock) -> Cart:
    cart = get_active_cart(db, customer_id)
    if cart is not None:
        return cart

    now = clock.now()
    cart = Cart(
        id=uuid4().hex,
        customer_id=customer_id,
        restaurant_id=None,
        items_json=[],
        applied_coupon_json=None,
        subtotal=ZERO,
        delivery_fee=ZERO,
        tax=ZERO,
        discount=ZERO,
        total=ZERO,
        is_active=True,
        version=0,
        created_at=now,
        updated_at=now,
    )
    db.add(cart)
    return cart


def recalculate(db: Session, cart: Cart) -> PricingTotals:
    items = load_items(cart)

    if not items:
        cart.restaurant_id = None
        cart.applied_coupon_json = None
        totals = PricingTotals.zero()
    else:
        restaurant = db.get(Restaurant, cart.restaurant_id) if cart.restaurant_id else None
        delivery_fee = Decimal(restaurant.delivery_fee) if restaurant is not None else ZERO
        totals = compute_totals(items, delivery_fee, _applied_coupon(cart), rate=tax_rate()).rounded()

    cart.subtotal = totals.subtotal
    cart.delivery_fee = totals.delivery_fee
    cart.tax = totals.tax
    cart.discount = totals.discount
    cart.total = totals.total
    return totals


def _persist(db: Session, cart: Cart, *, clock: Clock) -> Cart:
    recalculate(db, cart)
    cart.version = (cart.version or 0) + 1
    cart.updated_at = clock.now()
    db.commit()
    return cart


def _check_index(items: list[LineItem], index: int) -> None:
    if index < 0 or index >= len(items):
        raise InvalidIndexError(index, len(items))


def add_item(
    db: Session,
    cart: Cart,
    menu_item: MenuItem,
    quantity: int,
    customizations: list[Customization] | None = None,
    special_instructions: str = "",
    *,
    clock: Clock,
) -> Cart:
    if quantity < 1:
        raise ValueError("quantity must be at least 1")

    if not menu_item.is_available:
        raise ItemUnavailableError(menu_item.id, menu_item.name)

    restaurant = db.get(Restaurant, menu_item.restaurant_id)
    if restaurant is None or not restaurant.is_active:
        raise RestaurantInactiveError(menu_item.restaurant_id)

    items = load_items(cart)
    if cart.restaurant_id is not None and cart.restaurant_id != menu_item.restaurant_id:
        logger.info(
            "Cart %s switched restaurant %s -> %s; dropping %d line(s)",
            cart.id,
            cart.restaurant_id,
            menu_item.restaurant_id,
            len(items),
        )
        items = []
        cart.applied_coupon_json = None

    cart.restaurant_id = menu_item.restaurant_id

    selections = list(customizations or [])
    instructions = special_instructions or ""

    for idx, line in enumerate(items):
        if line.same_selection(menu_item.id, selections, instructions):
            items[idx] = line.with_quantity(line.quantity + quantity)
            break
    else:
        items.append(
            LineItem.build(
                menu_item_id=menu_item.id,
                name=menu_item.name,
                unit_price=menu_item.final_price,
                quantity=quantity,
                customizations=selections,
                special_instructions=instructions,
            )
        )

    _store_items(cart, items)

    log_event(
        db,
        actor_id=cart.customer_id,
        entity_type=EntityTypeV1.CART,
        entity_id=cart.id,
        event_type=EventTypeV1.CART_ITEM_ADDED,
        event_payload={"menu_item_id": menu_item.id, "quantity": quantity},
        clock=clock,
    )
    return _persist(db, cart, clock=clock)


def remove_item(db: Session, cart: Cart, index: int, *, clock: Clock) -> Cart:
    items = load_items(cart)
    _check_index(items, index)

    removed = items.pop(index)
    _store_items(cart, items)

    if not items:
        cart.restaurant_id = None
        cart.applied_coupon_json = None
        cart.is_active = False

    log_event(
        db,
        actor_id=cart.customer_id,
        entity_type=EntityTypeV1.CART,
        entity_id=cart.id,
        event_type=EventTypeV1.CART_ITEM_REMOVED,
        event_payload={"index": index, "menu_item_id": removed.menu_item_id},
        clock=clock,
    )
    return _persist(db, cart, clock=clock)


def update_item_quantity(db: Session, cart: Cart, index: int, quantity: int, *, clock: Clock) -> Cart:
    if quantity <= 0:
        return remove_item(db, cart, index, clock=clock)

    items = load_items(cart)
    _check_index(items, index)

    items[index] = items[index].with_quantity(quantity)
    _store_items(cart, items)

    log_event(
        db,
        actor_id=cart.customer_id,
        entity_type=EntityTypeV1.CART,
        entity_id=cart.id,
        event_type=EventTypeV1.CART_ITEM_UPDATED,
        event_payload={"index": index, "quantity": quantity},
        clock=clock,
    )
    return _persist(db, cart, clock=clock)


def apply_coupon(db: Session, cart: Cart, coupon: Coupon, *, clock: Clock) -> Cart:
    if not cart.items_json:
        raise EmptyCartError()

    cart.applied_coupon_json = coupon.model_dump(mode="json")

    log_event(
        db,
        actor_id=cart.customer_id,
        entity_type=EntityTypeV1.CART,
        entity_id=cart.id,
        event_type=EventTypeV1.CART_COUPON_APPLIED,
        event_payload=coupon.model_dump(mode="json"),
        clock=clock,
    )
    return _persist(db, cart, clock=clock)


def remove_coupon(db: Session, cart: Cart, *, clock: Clock) -> Cart:
    cart.applied_coupon_json = None

    log_event(
        db,
        actor_id=cart.customer_id,
        entity_type=EntityTypeV1.CART,
        entity_id=cart.id,
        event_type=EventTypeV1.CART_COUPON_REMOVED,
        event_payload={},
        clock=clock,
    )
    return _persist(db, cart, clock=clock)


def clear_cart(db: Session, cart: Cart, *, clock: Clock) -> Cart:
    _store_items(cart, [])
    cart.restaurant_id = None
    cart.applied_coupon_json = None
    cart.is_active = False

    log_event(
        db,
        actor_id=cart.customer_id,
        entity_type=EntityTypeV1.CART,
        entity_id=cart.id,
        event_type=EventTypeV1.CART_CLEARED,
        event_payload={},
        clock=clock,
    )
    logger.info("Cart %s cleared for customer %s", cart.id, cart.customer_id)
    return _persist(db, cart, clock=clock)
