from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from packages.shared.schemas.order_v1 import DiscountTypeV1, PaymentMethodV1
from services.api.app.db.models import Order
from services.api.app.models.cart import Coupon
from services.api.app.models.order import ContactInfo, DeliveryAddress
from services.api.app.services.audit import list_events
from services.api.app.services.cart import add_item, apply_coupon, get_active_cart, get_or_create_cart
from services.api.app.services.checkout import cart_problems, estimate_delivery_minutes, place_order
from services.api.app.services.errors import (
    EmptyCartError,
    ItemUnavailableError,
    MinimumOrderNotMetError,
    OrderNumberUnavailableError,
    RestaurantInactiveError,
)

ADDRESS = DeliveryAddress(street="1 Main St", city="Springfield", state="IL", zip_code="62701")
CONTACT = ContactInfo(phone="555-0100", email="c1@example.com")


class StubRandom:
    """Hands out the given random draws in order."""

    def __init__(self, draws: list[int]) -> None:
        self._draws = list(draws)

    def randrange(self, stop: int) -> int:
        return self._draws.pop(0)


def _checkout(db, clock, customer_id: str = "c-1", rng=None) -> Order:
    return place_order(
        db,
        customer_id,
        ADDRESS,
        CONTACT,
        PaymentMethodV1.CARD,
        "Ring the bell",
        clock=clock,
        rng=rng,
    )


def _fill_cart(db, clock, menu_item, quantity: int = 2, customer_id: str = "c-1"):
    cart = get_or_create_cart(db, customer_id, clock=clock)
    return add_item(db, cart, menu_item, quantity, clock=clock)


@pytest.mark.parametrize(
    ("text", "minutes"),
    [
        ("30-45 mins", 45),
        ("25 to 35 min", 35),
        ("1 hour", 60),
        ("1 hr", 60),
        ("1-2 hours", 120),
        ("1 hour 30 mins", 90),
        ("1.5 hours", 90),
        ("30–45 mins", 45),
        ("20—25 min", 25),
        ("45", 45),
        ("soon", 45),
        ("", 45),
        (None, 45),
    ],
)
def test_estimate_delivery_minutes(text, minutes: int, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PLATTER_DEFAULT_DELIVERY_MINUTES", raising=False)
    assert estimate_delivery_minutes(text) == minutes


def test_delivery_fallback_is_configurable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLATTER_DEFAULT_DELIVERY_MINUTES", "60")
    assert estimate_delivery_minutes("asap") == 60


def test_place_order_snapshots_cart(db, clock, catalog) -> None:
    cart = _fill_cart(db, clock, catalog.burger)
    key = f"{cart.id}:{cart.version}"

    order = _checkout(db, clock)

    assert order.order_number.startswith("FZ")
    assert len(order.order_number) == 13
    assert order.checkout_key == key
    assert order.customer_id == "c-1"
    assert order.restaurant_id == "r-1"
    assert order.status == "pending"
    assert order.payment_status == "pending"
    assert order.payment_method == "card"
    assert order.special_instructions == "Ring the bell"
    assert order.items_json[0]["name"] == "Classic Burger"
    assert order.delivery_address_json["city"] == "Springfield"

    assert order.subtotal == Decimal("24.00")
    assert order.delivery_fee == Decimal("3.00")
    assert order.tax == Decimal("1.92")
    assert order.total == Decimal("28.92")

    assert order.estimated_delivery_time == clock.now() + timedelta(minutes=45)
    assert order.actual_delivery_time is None

    assert len(order.timeline_json) == 1
    assert order.timeline_json[0]["status"] == "pending"

    assert get_active_cart(db, "c-1") is None
    assert [e.event_type for e in list_events(db, order.id)] == ["ORDER_PLACED"]


def test_order_keeps_coupon_and_discount(db, clock, catalog) -> None:
    cart = _fill_cart(db, clock, catalog.burger)
    apply_coupon(
        db,
        cart,
        Coupon(code="SAVE10", discount=Decimal("10"), discount_type=DiscountTypeV1.PERCENTAGE),
        clock=clock,
    )

    order = _checkout(db, clock)

    assert order.discount == Decimal("2.40")
    assert order.total == Decimal("26.52")
    assert order.applied_coupon_json["code"] == "SAVE10"


def test_order_is_independent_of_later_menu_changes(db, clock, catalog) -> None:
    _fill_cart(db, clock, catalog.burger)
    order = _checkout(db, clock)

    catalog.burger.price = Decimal("99.00")
    db.commit()
    db.refresh(order)

    assert order.items_json[0]["unit_price"] == "12.00"
    assert order.total == Decimal("28.92")


def test_empty_cart_cannot_be_placed(db, clock, catalog) -> None:
    with pytest.raises(EmptyCartError):
        _checkout(db, clock)


def test_minimum_order_is_enforced(db, clock, catalog) -> None:
    catalog.restaurant.minimum_order = Decimal("30.00")
    db.commit()
    _fill_cart(db, clock, catalog.burger)

    with pytest.raises(MinimumOrderNotMetError, match=r"\$30\.00"):
        _checkout(db, clock)

    cart = get_active_cart(db, "c-1")
    assert cart is not None
    assert len(cart.items_json) == 1
    assert db.query(Order).count() == 0


def test_minimum_order_met(db, clock, catalog) -> None:
    _fill_cart(db, clock, catalog.burger)
    assert _checkout(db, clock).subtotal == Decimal("24.00")


def test_inactive_restaurant_blocks_checkout(db, clock, catalog) -> None:
    _fill_cart(db, clock, catalog.burger)
    catalog.restaurant.is_active = False
    db.commit()

    with pytest.raises(RestaurantInactiveError):
        _checkout(db, clock)


def test_unavailable_item_blocks_checkout(db, clock, catalog) -> None:
    _fill_cart(db, clock, catalog.burger)
    catalog.burger.is_available = False
    db.commit()

    with pytest.raises(ItemUnavailableError):
        _checkout(db, clock)

    assert get_active_cart(db, "c-1") is not None


def test_retried_checkout_returns_existing_order(db, clock, catalog) -> None:
    cart = _fill_cart(db, clock, catalog.burger)
    items = list(cart.items_json)
    version = cart.version

    first = _checkout(db, clock)

    # Simulate a second request that read the cart before the first one committed.
    cart.is_active = True
    cart.items_json = items
    cart.restaurant_id = "r-1"
    cart.version = version
    db.commit()

    second = _checkout(db, clock)

    assert second.id == first.id
    assert db.query(Order).count() == 1


def test_checkout_retry_after_success_returns_same_order(db, clock, catalog) -> None:
    _fill_cart(db, clock, catalog.burger)

    first = _checkout(db, clock)
    second = _checkout(db, clock)

    assert second.id == first.id
    assert db.query(Order).count() == 1


def test_checkout_after_new_cart_is_not_a_retry(db, clock, catalog) -> None:
    _fill_cart(db, clock, catalog.burger)
    _checkout(db, clock)
    get_or_create_cart(db, "c-1", clock=clock)
    db.commit()

    with pytest.raises(EmptyCartError):
        _checkout(db, clock)


def test_order_number_collision_is_retried(db, clock, catalog) -> None:
    _fill_cart(db, clock, catalog.burger, customer_id="c-1")
    first = _checkout(db, clock, "c-1", rng=StubRandom([7]))

    _fill_cart(db, clock, catalog.burger, customer_id="c-2")
    second = _checkout(db, clock, "c-2", rng=StubRandom([7, 8]))

    assert first.order_number.endswith("007")
    assert second.order_number.endswith("008")
    assert first.order_number[:-3] == second.order_number[:-3]
    assert get_active_cart(db, "c-2") is None


def test_order_number_attempts_are_bounded(db, clock, catalog) -> None:
    _fill_cart(db, clock, catalog.burger, customer_id="c-1")
    _checkout(db, clock, "c-1", rng=StubRandom([7]))

    _fill_cart(db, clock, catalog.burger, customer_id="c-2")
    with pytest.raises(OrderNumberUnavailableError):
        _checkout(db, clock, "c-2", rng=StubRandom([7] * 5))

    assert get_active_cart(db, "c-2") is not None
    assert db.query(Order).count() == 1


def test_cart_problems_for_missing_cart(db, catalog) -> None:
    result = cart_problems(db, None)
    assert result.valid is False
    assert result.errors == ["Cart is empty"]


def test_cart_problems_lists_every_blocking_issue(db, clock, catalog) -> None:
    cart = _fill_cart(db, clock, catalog.fries, quantity=1)
    catalog.fries.is_available = False
    db.commit()

    result = cart_problems(db, cart)

    assert result.valid is False
    assert "Minimum order amount is $20.00" in result.errors
    assert "Fries is no longer available" in result.errors


def test_cart_problems_warns_on_price_change(db, clock, catalog) -> None:
    cart = _fill_cart(db, clock, catalog.burger)
    catalog.burger.price = Decimal("13.00")
    db.commit()

    result = cart_problems(db, cart)

    assert result.valid is True
    assert result.warnings == ["Price of Classic Burger changed from $12.00 to $13.00"]
