from typing import Optional

import redis.asyncio as redis
from fastapi import APIRouter, Depends, Header, Response
from fastapi.responses import JSONResponse

from pizzeria.config import settings
from pizzeria.deps import get_manager
from pizzeria.lifecycle import OrderLifecycleManager
from pizzeria.redis_client import (
    IDEMPOTENCY_IN_FLIGHT,
    check_idempotency,
    get_redis,
    idempotency_key,
    release_idempotency_key,
    remember_order_code,
)
from pizzeria.schemas import CreateOrderRequest, OrderResponse, OrderStatusResponse

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


@router.post("", status_code=201, response_model=OrderResponse)
async def create_order(
    body: CreateOrderRequest,
    response: Response,
    idempotency_key_header: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    manager: OrderLifecycleManager = Depends(get_manager),
    r: redis.Redis = Depends(get_redis),
):
    """
    Place a new pizza order. No registration required; the returned order_code is the tracking key.
    With an Idempotency-Key header a retried submission returns the first order (200) instead of a new one.
    """
    if not idempotency_key_header:
        return await manager.create_order(body.items)

    key = idempotency_key(idempotency_key_header)
    existing = await check_idempotency(r, key, settings.idempotency_ttl_seconds)
    if existing == IDEMPOTENCY_IN_FLIGHT:
        return JSONResponse(
            status_code=409,
            content={"status": 409, "message": "An order with this Idempotency-Key is still being created"},
        )
    if existing is not None:
        response.status_code = 200
        return await manager.get_order(existing)

    try:
        order = await manager.create_order(body.items)
    except Exception:
        await release_idempotency_key(r, key)
        raise
    await remember_order_code(r, key, order.order_code, settings.idempotency_ttl_seconds)
    return order


@router.get("/{order_code}/status", response_model=OrderStatusResponse)
async def get_order_status(order_code: str, manager: OrderLifecycleManager = Depends(get_manager)):
    """Current status of an order, with a customer-facing message."""
    return await manager.get_order_status(order_code)


@router.get("/{order_code}", response_model=OrderResponse)
async def get_order(order_code: str, manager: OrderLifecycleManager = Depends(get_manager)):
    return await manager.get_order(order_code)
