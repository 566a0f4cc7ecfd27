"""
Storage contracts for orders and the pizza catalog, plus in-memory implementations
(STORAGE_BACKEND=memory and tests). The PostgreSQL versions live in pizzeria.db.

Ordering contract for every list query: ascending created_at, ties broken by id
(ids are assigned in insertion order, so the first persisted order wins).
"""
from __future__ import annotations

import asyncio
import itertools
from dataclasses import replace
from typing import Iterable, Optional, Protocol, Sequence

from pizzeria.errors import DuplicateOrderCodeError, StaleOrderError
from pizzeria.models import Order, Pizza
from pizzeria.order_state import OrderStatus


class OrderRepository(Protocol):
    async def save(self, order: Order) -> Order:
        """
        Insert when order.id is None, otherwise update only if the stored version
        still equals order.version. Returns the persisted order (id/version filled).
        Raises DuplicateOrderCodeError on insert, StaleOrderError on update.
        """
        ...

    async def find_by_code(self, order_code: str) -> Optional[Order]:
        ...

    async def find_by_status(self, status: OrderStatus) -> list[Order]:
        ...

    async def find_by_status_in(self, statuses: Sequence[OrderStatus]) -> list[Order]:
        ...


class PizzaCatalog(Protocol):
    async def find_pizza_by_id(self, pizza_id: int) -> Optional[Pizza]:
        ...

    async def list_available(self) -> list[Pizza]:
        ...


def queue_position(order: Order) -> tuple:
    return (order.created_at, order.id)


class InMemoryOrderRepository:
    def __init__(self) -> None:
        self._orders: dict[int, Order] = {}
        self._ids_by_code: dict[str, int] = {}
        self._next_id = itertools.count(1)
        self._lock = asyncio.Lock()

    async def save(self, order: Order) -> Order:
        async with self._lock:
            if order.id is None:
                if order.order_code in self._ids_by_code:
                    raise DuplicateOrderCodeError(order.order_code)
                stored = replace(order, id=next(self._next_id), version=0)
                self._ids_by_code[stored.order_code] = stored.id
            else:
                current = self._orders.get(order.id)
                if current is None or current.version != order.version:
                    raise StaleOrderError(order.order_code)
                stored = replace(order, version=order.version + 1)
            self._orders[stored.id] = stored
            return stored

    async def find_by_code(self, order_code: str) -> Optional[Order]:
        async with self._lock:
            order_id = self._ids_by_code.get(order_code)
            return self._orders.get(order_id) if order_id is not None else None

    async def find_by_status(self, status: OrderStatus) -> list[Order]:
        return await self.find_by_status_in([status])

    async def find_by_status_in(self, statuses: Sequence[OrderStatus]) -> list[Order]:
        wanted = set(statuses)
        async with self._lock:
            matches = [o for o in self._orders.values() if o.status in wanted]
        return sorted(matches, key=queue_position)

    async def count(self) -> int:
        async with self._lock:
            return len(self._orders)


class InMemoryPizzaCatalog:
    def __init__(self, pizzas: Iterable[Pizza] = ()) -> None:
        self._pizzas: dict[int, Pizza] = {p.id: p for p in pizzas}

    async def find_pizza_by_id(self, pizza_id: int) -> Optional[Pizza]:
        return self._pizzas.get(pizza_id)

    async def list_available(self) -> list[Pizza]:
        return [p for p in sorted(self._pizzas.values(), key=lambda p: p.id) if p.available]
