from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from services.api.app.db.deps import get_actor, get_db
from services.api.app.db.models import Order, Restaurant
from services.api.app.models.order import (
    CancelOrderRequest,
    OrderListItem,
    OrderOut,
    PlaceOrderRequest,
    RatingRequest,
    RefundRequest,
    StatusUpdateRequest,
)
from services.api.app.routers.errors import raise_http_error
from services.api.app.services.auth import (
    Actor,
    CustomerActor,
    require_admin,
    require_customer,
    require_order_access,
    require_order_owner,
    require_restaurant_access,
)
from services.api.app.services.checkout import place_order
from services.api.app.services.clock import get_clock
from services.api.app.services.errors import NotFoundError
from services.api.app.services.orders import (
    add_rating,
    can_be_cancelled,
    can_be_modified,
    cancel_order,
    order_summary,
    parse_status,
    process_refund,
    update_status,
)
from sqlalchemy.orm import Session

router = APIRouter()


def _order_out(order: Order) -> OrderOut:
    return OrderOut.from_row(
        order,
        can_be_cancelled=can_be_cancelled(order),
        can_be_modified=can_be_modified(order),
    )


def _require_order(db: Session, order_id: str) -> Order:
    order = db.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order", order_id)
    return order


@router.post("/v1/orders", response_model=OrderOut, status_code=201)
def create_order(
    payload: PlaceOrderRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> OrderOut:
    try:
        customer = require_customer(actor)
        order = place_order(
            db,
            customer.id,
            payload.delivery_address,
            payload.contact_info,
            payload.payment_method,
            payload.special_instructions,
            clock=get_clock(),
        )
    except Exception as e:
        raise_http_error(e)

    return _order_out(order)


@router.get("/v1/orders", response_model=list[OrderListItem])
def list_orders(
    status: str | None = None,
    restaurant_id: str | None = None,
    limit: int = Query(default=20, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[OrderListItem]:
    try:
        q = db.query(Order)
        if restaurant_id is not None:
            restaurant = db.get(Restaurant, restaurant_id)
            if restaurant is None:
                raise NotFoundError("Restaurant", restaurant_id)
            require_restaurant_access(actor, restaurant.owner_id)
            q = q.filter(Order.restaurant_id == restaurant_id)
        elif isinstance(actor, CustomerActor):
            q = q.filter(Order.customer_id == actor.id)
        if status:
            q = q.filter(Order.status == parse_status(status).value)
        rows = q.order_by(Order.created_at.desc()).limit(limit).all()
    except Exception as e:
        raise_http_error(e)

    return [order_summary(o) for o in rows]


@router.get("/v1/orders/{order_id}", response_model=OrderOut)
def get_order(order_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> OrderOut:
    try:
        order = _require_order(db, order_id)
        require_order_access(actor, order.customer_id)
    except Exception as e:
        raise_http_error(e)

    return _order_out(order)


@router.put("/v1/orders/{order_id}/status", response_model=OrderOut)
def set_order_status(
    order_id: str,
    payload: StatusUpdateRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> OrderOut:
    try:
        admin = require_admin(actor)
        order = _require_order(db, order_id)
        order = update_status(
            db, order, payload.status, payload.note, actor_id=admin.id, clock=get_clock()
        )
    except Exception as e:
        raise_http_error(e)

    return _order_out(order)


@router.put("/v1/orders/{order_id}/cancel", response_model=OrderOut)
def cancel(
    order_id: str,
    payload: CancelOrderRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> OrderOut:
    try:
        order = _require_order(db, order_id)
        require_order_access(actor, order.customer_id)
        order = cancel_order(db, order, payload.reason, actor_id=actor.id, clock=get_clock())
    except Exception as e:
        raise_http_error(e)

    return _order_out(order)


@router.put("/v1/orders/{order_id}/refund", response_model=OrderOut)
def refund(
    order_id: str,
    payload: RefundRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> OrderOut:
    try:
        admin = require_admin(actor)
        order = _require_order(db, order_id)
        order = process_refund(db, order, payload.amount, actor_id=admin.id, clock=get_clock())
    except Exception as e:
        raise_http_error(e)

    return _order_out(order)


@router.put("/v1/orders/{order_id}/rating", response_model=OrderOut)
def rate(
    order_id: str,
    payload: RatingRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> OrderOut:
    try:
        order = _require_order(db, order_id)
        require_order_owner(actor, order.customer_id)
        order = add_rating(
            db,
            order,
            payload.food,
            payload.delivery,
            payload.overall,
            payload.review,
            clock=get_clock(),
        )
    except Exception as e:
        raise_http_error(e)

    return _order_out(order)
