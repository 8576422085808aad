from __future__ import annotations

from fastapi import APIRouter, Depends
from services.api.app.db.deps import get_actor, get_db
from services.api.app.db.models import Cart, MenuItem
from services.api.app.models.cart import (
    AddCartItemRequest,
    ApplyCouponRequest,
    CartOut,
    CartValidationOut,
    UpdateCartItemRequest,
)
from services.api.app.routers.errors import raise_http_error
from services.api.app.services.auth import Actor, require_customer
from services.api.app.services.cart import (
    add_item,
    apply_coupon,
    clear_cart,
    get_active_cart,
    get_or_create_cart,
    remove_coupon,
    remove_item,
    update_item_quantity,
)
from services.api.app.services.checkout import cart_problems
from services.api.app.services.clock import get_clock
from services.api.app.services.coupons import resolve_coupon
from services.api.app.services.errors import NotFoundError
from sqlalchemy.orm import Session

router = APIRouter()


def _require_cart(db: Session, customer_id: str) -> Cart:
    cart = get_active_cart(db, customer_id)
    if cart is None:
        raise NotFoundError("Cart", customer_id)
    return cart


@router.get("/v1/cart", response_model=CartOut)
def get_cart(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> CartOut:
    try:
        customer = require_customer(actor)
    except Exception as e:
        raise_http_error(e)

    cart = get_active_cart(db, customer.id)
    if cart is None:
        return CartOut.empty(customer.id)
    return CartOut.from_row(cart)


@router.post("/v1/cart/items", response_model=CartOut)
def add_cart_item(
    payload: AddCartItemRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> CartOut:
    try:
        customer = require_customer(actor)
        clock = get_clock()

        menu_item = db.get(MenuItem, payload.menu_item_id)
        if menu_item is None:
            raise NotFoundError("Menu item", payload.menu_item_id)

        cart = get_or_create_cart(db, customer.id, clock=clock)
        cart = add_item(
            db,
            cart,
            menu_item,
            payload.quantity,
            payload.customizations,
            payload.special_instructions,
            clock=clock,
        )
    except Exception as e:
        raise_http_error(e)

    return CartOut.from_row(cart)


@router.put("/v1/cart/items/{index}", response_model=CartOut)
def update_cart_item(
    index: int,
    payload: UpdateCartItemRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> CartOut:
    try:
        customer = require_customer(actor)
        cart = _require_cart(db, customer.id)
        cart = update_item_quantity(db, cart, index, payload.quantity, clock=get_clock())
    except Exception as e:
        raise_http_error(e)

    return CartOut.from_row(cart)


@router.delete("/v1/cart/items/{index}", response_model=CartOut)
def remove_cart_item(
    index: int, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)
) -> CartOut:
    try:
        customer = require_customer(actor)
        cart = _require_cart(db, customer.id)
        cart = remove_item(db, cart, index, clock=get_clock())
    except Exception as e:
        raise_http_error(e)

    return CartOut.from_row(cart)


@router.post("/v1/cart/coupon", response_model=CartOut)
def apply_cart_coupon(
    payload: ApplyCouponRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> CartOut:
    try:
        customer = require_customer(actor)
        clock = get_clock()
        cart = _require_cart(db, customer.id)
        coupon = resolve_coupon(payload.coupon_code, subtotal=cart.subtotal, now=clock.now())
        cart = apply_coupon(db, cart, coupon, clock=clock)
    except Exception as e:
        raise_http_error(e)

    return CartOut.from_row(cart)


@router.delete("/v1/cart/coupon", response_model=CartOut)
def remove_cart_coupon(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> CartOut:
    try:
        customer = require_customer(actor)
        cart = _require_cart(db, customer.id)
        cart = remove_coupon(db, cart, clock=get_clock())
    except Exception as e:
        raise_http_error(e)

    return CartOut.from_row(cart)


@router.delete("/v1/cart", response_model=CartOut)
def clear_active_cart(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> CartOut:
    try:
        customer = require_customer(actor)
        cart = get_active_cart(db, customer.id)
        if cart is None:
            return CartOut.empty(customer.id)
        cart = clear_cart(db, cart, clock=get_clock())
    except Exception as e:
        raise_http_error(e)

    return CartOut.from_row(cart)


@router.post("/v1/cart/validate", response_model=CartValidationOut)
def validate_cart(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> CartValidationOut:
    try:
        customer = require_customer(actor)
        return cart_problems(db, get_active_cart(db, customer.id))
    except Exception as e:
        raise_http_error(e)
