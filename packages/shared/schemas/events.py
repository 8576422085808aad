"""Shared event schema (v1).

The backend stores an append-only event log next to every cart and order mutation.
Clients can consume these events to render an audit trail.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EntityTypeV1(str, Enum):
    CART = "Cart"
    ORDER = "Order"


class EventTypeV1(str, Enum):
    CART_ITEM_ADDED = "CART_ITEM_ADDED"
    CART_ITEM_UPDATED = "CART_ITEM_UPDATED"
    CART_ITEM_REMOVED = "CART_ITEM_REMOVED"
    CART_COUPON_APPLIED = "CART_COUPON_APPLIED"
    CART_COUPON_REMOVED = "CART_COUPON_REMOVED"
    CART_CLEARED = "CART_CLEARED"
    ORDER_PLACED = "ORDER_PLACED"
    ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    ORDER_REFUNDED = "ORDER_REFUNDED"
    ORDER_RATED = "ORDER_RATED"


class EventV1(BaseModel):
    id: str
    actor_id: str | None = None

    entity_type: EntityTypeV1
    entity_id: str

    event_type: EventTypeV1
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: str
