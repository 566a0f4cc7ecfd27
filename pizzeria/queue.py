"""
Kitchen queue views derived from stored orders: the active queue shown to staff and
the next PENDING order to prepare (strict FIFO on created_at, first persisted wins ties).
"""
from typing import Optional

from pizzeria.models import Order
from pizzeria.order_state import OrderStatus
from pizzeria.repository import OrderRepository, queue_position

ACTIVE_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.IN_PREPARATION,
    OrderStatus.READY,
)


async def active_queue(orders: OrderRepository) -> list[Order]:
    """Every not-yet-completed order, oldest first, in one list regardless of status."""
    return sorted(await orders.find_by_status_in(ACTIVE_STATUSES), key=queue_position)


async def next_to_prepare(orders: OrderRepository) -> Optional[Order]:
    pending = await orders.find_by_status(OrderStatus.PENDING)
    if not pending:
        return None
    return min(pending, key=queue_position)
