from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from pizzeria.order_state import OrderStatus


class PizzaItemDto(BaseModel):
    pizza_id: int = Field(..., description="Menu pizza id")
    quantity: int = Field(..., ge=1, description="How many of this pizza")
    notes: Optional[str] = Field(default=None, description="Free-text note for the kitchen")


class CreateOrderRequest(BaseModel):
    items: list[PizzaItemDto] = Field(..., min_length=1, description="Order must contain at least one item")


class OrderItemResponse(BaseModel):
    pizza_name: str
    quantity: int
    notes: Optional[str] = None


class OrderResponse(BaseModel):
    id: int
    order_code: str
    status: OrderStatus
    status_description: str
    items: list[OrderItemResponse]
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class OrderStatusResponse(BaseModel):
    order_code: str
    status: OrderStatus
    status_description: str
    message: str


class PizzaResponse(BaseModel):
    id: int
    name: str
    description: str
    price: Decimal
    available: bool
