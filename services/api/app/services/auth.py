"""Caller identity.

Token issuance lives outside this service; by the time a request reaches a router the caller
has already been authenticated and is passed in as an actor id plus role.
"""

from __future__ import annotations

from dataclasses import dataclass

from packages.shared.schemas.order_v1 import ActorRoleV1
from services.api.app.services.errors import UnauthorizedError


@dataclass(frozen=True, slots=True)
class AdminActor:
    id: str


@dataclass(frozen=True, slots=True)
class CustomerActor:
    id: str


Actor = AdminActor | CustomerActor


def actor_from_claims(actor_id: str, role: str) -> Actor:
    actor_id = actor_id.strip()
    if not actor_id:
        raise ValueError("Actor id is required")

    try:
        parsed = ActorRoleV1(role.strip().lower())
    except ValueError as e:
        raise ValueError(f"Unknown actor role {role!r}. Expected admin or customer.") from e

    if parsed == ActorRoleV1.ADMIN:
        return AdminActor(id=actor_id)
    return CustomerActor(id=actor_id)


def require_customer(actor: Actor) -> CustomerActor:
    if not isinstance(actor, CustomerActor):
        raise UnauthorizedError("Only customers can use a cart or place orders")
    return actor


def require_admin(actor: Actor) -> AdminActor:
    if not isinstance(actor, AdminActor):
        raise UnauthorizedError("Admin access required")
    return actor


def require_order_access(actor: Actor, customer_id: str) -> None:
    """Admins see every order; customers only their own."""

    if isinstance(actor, AdminActor):
        return
    if actor.id != customer_id:
        raise UnauthorizedError("Not authorized to access this order")


def require_order_owner(actor: Actor, customer_id: str) -> CustomerActor:
    customer = require_customer(actor)
    if customer.id != customer_id:
        raise UnauthorizedError("Not authorized to access this order")
    return customer


def require_restaurant_access(actor: Actor, owner_id: str | None) -> None:
    if isinstance(actor, AdminActor):
        return
    if owner_id is None or actor.id != owner_id:
        raise UnauthorizedError("Not authorized to view this restaurant's orders")
