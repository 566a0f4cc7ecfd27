"""
Domain records: pizzas on the menu and the persisted state of one order.

Records are immutable; a state change produces a new Order via dataclasses.replace.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pizzeria.order_state import OrderStatus


@dataclass(frozen=True)
class Pizza:
    id: int
    name: str
    description: str = ""
    price: Decimal = Decimal("0.00")
    available: bool = True


@dataclass(frozen=True)
class OrderItem:
    pizza_id: int
    pizza_name: str
    quantity: int
    notes: Optional[str] = None


@dataclass(frozen=True)
class Order:
    """
    One customer order.

    - id: assigned by the store on first save (None before)
    - order_code: public tracking token, never changes
    - version: bumped by the store on every update, used for compare-and-swap
    - started_at is set iff status is past PENDING; completed_at iff COMPLETED
    """

    id: Optional[int]
    order_code: str
    status: OrderStatus
    items: tuple[OrderItem, ...]
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    version: int = 0

    @property
    def is_active(self) -> bool:
        return self.status is not OrderStatus.COMPLETED
