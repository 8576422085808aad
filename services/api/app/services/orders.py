from __future__ import annotations

import logging
import random
from datetime import timezone
from decimal import Decimal

from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from packages.shared.schemas.order_v1 import TERMINAL_STATUSES, OrderStatusV1, PaymentStatusV1
from services.api.app.db.models import Order
from services.api.app.models.order import OrderListItem, Rating, TimelineEntry
from services.api.app.services.audit import log_event
from services.api.app.services.clock import Clock
from services.api.app.services.errors import (
    AlreadyRatedError,
    InvalidRefundAmountError,
    InvalidStatusTransitionError,
    NotDeliveredError,
    OrderNotCancellableError,
)
from services.api.app.services.pricing import money
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "FZ"

NOT_CANCELLABLE = TERMINAL_STATUSES | {OrderStatusV1.OUT_FOR_DELIVERY}
MODIFIABLE = frozenset({OrderStatusV1.PENDING, OrderStatusV1.CONFIRMED})


def parse_status(value: str) -> OrderStatusV1:
    try:
        return OrderStatusV1(value.strip().lower())
    except ValueError as e:
        raise InvalidStatusTransitionError(value) from e


def generate_order_number(clock: Clock, rng: random.Random | None = None) -> str:
    """FZ + last 8 digits of the epoch milliseconds + 3 random digits."""

    rng = rng or random.Random()
    now = clock.now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    epoch_ms = int(now.timestamp() * 1000)
    return f"{ORDER_NUMBER_PREFIX}{str(epoch_ms)[-8:]}{rng.randrange(1000):03d}"


def record_status(order: Order, status: OrderStatusV1, note: str | None, *, clock: Clock) -> None:
    """Set the status and append its timeline entry. Does not commit."""

    now = clock.now()
    entry = TimelineEntry(
        status=status,
        timestamp=now,
        note=note or f"Order status updated to {status.value}",
    )

    # Append-only; reassign so the JSON column is flagged dirty.
    order.timeline_json = [*(order.timeline_json or []), entry.model_dump(mode="json")]
    order.status = status.value
    order.updated_at = now

    if status == OrderStatusV1.DELIVERED and order.actual_delivery_time is None:
        order.actual_delivery_time = now


def can_be_cancelled(order: Order) -> bool:
    return OrderStatusV1(order.status) not in NOT_CANCELLABLE


def can_be_modified(order: Order) -> bool:
    return OrderStatusV1(order.status) in MODIFIABLE


def update_status(
    db: Session,
    order: Order,
    status: str | OrderStatusV1,
    note: str | None = None,
    *,
    actor_id: str | None,
    clock: Clock,
) -> Order:
    new_status = status if isinstance(status, OrderStatusV1) else parse_status(status)
    previous = order.status

    record_status(order, new_status, note, clock=clock)

    log_event(
        db,
        actor_id=actor_id,
        entity_type=EntityTypeV1.ORDER,
        entity_id=order.id,
        event_type=EventTypeV1.ORDER_STATUS_CHANGED,
        event_payload={"from": previous, "to": new_status.value, "note": note},
        clock=clock,
    )
    db.commit()

    logger.info("Order %s status %s -> %s", order.order_number, previous, new_status.value)
    return order


def cancel_order(
    db: Session,
    order: Order,
    reason: str | None = None,
    *,
    actor_id: str | None,
    clock: Clock,
) -> Order:
    if not can_be_cancelled(order):
        logger.warning("Rejected cancel of order %s in status %s", order.order_number, order.status)
        raise OrderNotCancellableError(order.order_number, order.status)

    reason = reason or "Cancelled by customer"
    order.cancellation_reason = reason
    record_status(order, OrderStatusV1.CANCELLED, f"Order cancelled: {reason}", clock=clock)

    log_event(
        db,
        actor_id=actor_id,
        entity_type=EntityTypeV1.ORDER,
        entity_id=order.id,
        event_type=EventTypeV1.ORDER_CANCELLED,
        event_payload={"reason": reason},
        clock=clock,
    )
    db.commit()

    logger.info("Order %s cancelled", order.order_number)
    return order


def process_refund(
    db: Session,
    order: Order,
    amount: Decimal,
    *,
    actor_id: str | None,
    clock: Clock,
) -> Order:
    amount = Decimal(amount)
    total = Decimal(order.total)
    if amount <= 0 or amount > total:
        logger.warning("Rejected refund of %s on order %s (total %s)", amount, order.order_number, total)
        raise InvalidRefundAmountError(amount, total)

    refunded = money(amount)
    order.refund_amount = refunded
    order.payment_status = PaymentStatusV1.REFUNDED.value
    record_status(order, OrderStatusV1.REFUNDED, f"Refund processed: ${refunded}", clock=clock)

    log_event(
        db,
        actor_id=actor_id,
        entity_type=EntityTypeV1.ORDER,
        entity_id=order.id,
        event_type=EventTypeV1.ORDER_REFUNDED,
        event_payload={"amount": str(refunded)},
        clock=clock,
    )
    db.commit()

    logger.info("Order %s refunded %s", order.order_number, refunded)
    return order


def add_rating(
    db: Session,
    order: Order,
    food: int,
    delivery: int,
    overall: int,
    review: str | None = None,
    *,
    clock: Clock,
) -> Order:
    if order.status != OrderStatusV1.DELIVERED.value:
        raise NotDeliveredError(order.order_number)

    if order.rating_json:
        raise AlreadyRatedError(order.order_number)

    rating = Rating(
        food=food,
        delivery=delivery,
        overall=overall,
        review=review,
        reviewed_at=clock.now(),
    )
    order.rating_json = rating.model_dump(mode="json")
    order.updated_at = clock.now()

    log_event(
        db,
        actor_id=order.customer_id,
        entity_type=EntityTypeV1.ORDER,
        entity_id=order.id,
        event_type=EventTypeV1.ORDER_RATED,
        event_payload={"food": food, "delivery": delivery, "overall": overall},
        clock=clock,
    )
    db.commit()
    return order


def order_summary(order: Order) -> OrderListItem:
    return OrderListItem(
        id=order.id,
        order_number=order.order_number,
        restaurant_id=order.restaurant_id,
        status=order.status,
        payment_status=order.payment_status,
        total=money(order.total),
        total_items=sum(int(i.get("quantity", 0)) for i in order.items_json or []),
        created_at=order.created_at,
    )
