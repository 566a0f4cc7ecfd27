"""
Errors raised by the order lifecycle and its stores. The HTTP layer maps them to responses.
"""
from pizzeria.order_state import OrderStatus


class OrderServiceError(Exception):
    """Base class for every error the order service reports to callers."""


class PizzaNotFoundError(OrderServiceError):
    """An order line refers to a pizza the catalog does not know."""

    def __init__(self, pizza_id: int):
        self.pizza_id = pizza_id
        super().__init__(f"Pizza not found: {pizza_id}")


class OrderNotFoundError(OrderServiceError):
    def __init__(self, order_code: str | None = None, message: str | None = None):
        self.order_code = order_code
        super().__init__(message or f"Order not found: {order_code}")


class QueueEmptyError(OrderNotFoundError):
    """No PENDING order could be taken. Kept distinct from an unknown order code."""

    def __init__(self, message: str = "No pending orders in queue"):
        super().__init__(message=message)


class IllegalTransitionError(OrderServiceError):
    """Raised when the order's current status does not allow the requested one."""

    def __init__(self, current_status: OrderStatus, attempted_status: OrderStatus):
        self.current_status = current_status
        self.attempted_status = attempted_status
        super().__init__(
            f"Cannot transition from {current_status.value} to {attempted_status.value}"
        )


class StaleOrderError(OrderServiceError):
    """Raised by a store when the order changed since it was read (version mismatch)."""

    def __init__(self, order_code: str):
        self.order_code = order_code
        super().__init__(f"Order {order_code} was modified concurrently")


class DuplicateOrderCodeError(OrderServiceError):
    """Raised by a store when order_code is already taken (UNIQUE constraint)."""

    def __init__(self, order_code: str):
        self.order_code = order_code
        super().__init__(f"Order code already in use: {order_code}")


class OrderCodeExhaustedError(OrderServiceError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not allocate a unique order code after {attempts} attempts")
