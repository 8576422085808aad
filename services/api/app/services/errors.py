from __future__ import annotations

from decimal import Decimal


class OrderingError(Exception):
    """Base class for cart, checkout and order errors."""


class NotFoundError(OrderingError):
    def __init__(self, entity: str, entity_id: str | None) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class UnauthorizedError(OrderingError):
    pass


class ItemUnavailableError(OrderingError):
    def __init__(self, menu_item_id: str, name: str | None = None) -> None:
        super().__init__(f"{name or 'Menu item'} is no longer available")
        self.menu_item_id = menu_item_id


class RestaurantInactiveError(OrderingError):
    def __init__(self, restaurant_id: str | None) -> None:
        super().__init__("Restaurant is currently unavailable")
        self.restaurant_id = restaurant_id


class InvalidIndexError(OrderingError):
    def __init__(self, index: int, size: int) -> None:
        super().__init__(f"Invalid item index {index}; cart has {size} item(s)")
        self.index = index
        self.size = size


class EmptyCartError(OrderingError):
    def __init__(self) -> None:
        super().__init__("Cart is empty")


class MinimumOrderNotMetError(OrderingError):
    def __init__(self, minimum_order: Decimal, subtotal: Decimal) -> None:
        super().__init__(f"Minimum order amount is ${minimum_order:.2f}")
        self.minimum_order = minimum_order
        self.subtotal = subtotal


class InvalidCouponError(OrderingError):
    def __init__(self, code: str, reason: str = "Invalid coupon code") -> None:
        super().__init__(reason)
        self.code = code


class InvalidStatusTransitionError(OrderingError):
    def __init__(self, status: str) -> None:
        super().__init__(f"Invalid status: {status}")
        self.status = status


class OrderNotCancellableError(OrderingError):
    def __init__(self, order_number: str, status: str) -> None:
        super().__init__(f"Order {order_number} cannot be cancelled while {status}")
        self.order_number = order_number
        self.status = status


class NotDeliveredError(OrderingError):
    def __init__(self, order_number: str) -> None:
        super().__init__(f"Order {order_number} must be delivered before rating")
        self.order_number = order_number


class AlreadyRatedError(OrderingError):
    def __init__(self, order_number: str) -> None:
        super().__init__(f"Order {order_number} has already been rated")
        self.order_number = order_number


class InvalidRefundAmountError(OrderingError):
    def __init__(self, amount: Decimal, total: Decimal) -> None:
        super().__init__(
            f"Refund amount must be greater than 0 and at most the order total. "
            f"amount={amount} total={total}"
        )
        self.amount = amount
        self.total = total


class OrderNumberUnavailableError(OrderingError):
    def __init__(self, attempts: int) -> None:
        super().__init__(f"Could not allocate a unique order number after {attempts} attempts")
        self.attempts = attempts
