from fastapi import APIRouter, Depends

from pizzeria.deps import get_manager
from pizzeria.lifecycle import OrderLifecycleManager
from pizzeria.schemas import OrderResponse

router = APIRouter(prefix="/api/v1/pizzeria", tags=["staff"])


@router.get("/queue", response_model=list[OrderResponse])
async def get_order_queue(manager: OrderLifecycleManager = Depends(get_manager)):
    """All active orders (PENDING, IN_PREPARATION, READY), oldest first."""
    return await manager.get_order_queue()


@router.post("/orders/next", response_model=OrderResponse)
async def take_next_order(manager: OrderLifecycleManager = Depends(get_manager)):
    """Take the oldest pending order and start preparing it. 404 when the queue is empty."""
    return await manager.take_next_order()


@router.put("/orders/{order_code}/ready", response_model=OrderResponse)
async def mark_order_ready(order_code: str, manager: OrderLifecycleManager = Depends(get_manager)):
    return await manager.mark_ready(order_code)


@router.put("/orders/{order_code}/complete", response_model=OrderResponse)
async def complete_order(order_code: str, manager: OrderLifecycleManager = Depends(get_manager)):
    """Mark a ready order as handed over to the customer."""
    return await manager.complete_order(order_code)
