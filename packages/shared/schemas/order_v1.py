"""Shared order vocabulary (v1).

Status and payment values are persisted as these literal strings and returned to clients
unchanged. They should remain stable and backwards compatible once shipped.
"""

from __future__ import annotations

from enum import Enum


class OrderStatusV1(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatusV1(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethodV1(str, Enum):
    CASH = "cash"
    CARD = "card"
    DEBIT = "debit"
    WALLET = "wallet"
    UPI = "upi"


class DiscountTypeV1(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ActorRoleV1(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


TERMINAL_STATUSES = frozenset(
    {OrderStatusV1.DELIVERED, OrderStatusV1.CANCELLED, OrderStatusV1.REFUNDED}
)
