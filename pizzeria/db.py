"""
Async Postgres: pizzas (catalog) + orders / order_items (order state).
Order inserts write the order and all its items in one transaction.
Updates are compare-and-swap on orders.version, so two staff members can never
both move the same order (UPDATE ... WHERE id = $ AND version = $ -> "UPDATE 0" = lost race).
"""
import logging
from dataclasses import replace
from typing import Optional, Sequence

import asyncpg
from asyncpg.exceptions import UniqueViolationError

from pizzeria.config import settings
from pizzeria.errors import DuplicateOrderCodeError, StaleOrderError
from pizzeria.menu import DEFAULT_MENU
from pizzeria.models import Order, OrderItem, Pizza
from pizzeria.order_state import OrderStatus

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None


async def get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is None:
        _pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=1,
            max_size=5,
            command_timeout=60,
        )
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def init_schema(pool: asyncpg.Pool) -> None:
    async with pool.acquire() as conn:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS pizzas (
                id BIGSERIAL PRIMARY KEY,
                name VARCHAR(100) NOT NULL UNIQUE,
                description TEXT NOT NULL DEFAULT '',
                price NUMERIC(8, 2) NOT NULL,
                available BOOLEAN NOT NULL DEFAULT TRUE
            );
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS orders (
                id BIGSERIAL PRIMARY KEY,
                order_code VARCHAR(32) NOT NULL UNIQUE,
                status VARCHAR(20) NOT NULL,
                created_at TIMESTAMPTZ NOT NULL,
                started_at TIMESTAMPTZ,
                completed_at TIMESTAMPTZ,
                version INT NOT NULL DEFAULT 0,
                CHECK ((started_at IS NULL) = (status = 'PENDING')),
                CHECK ((completed_at IS NULL) = (status <> 'COMPLETED'))
            );
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_orders_status_created_at
            ON orders(status, created_at, id);
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS order_items (
                id BIGSERIAL PRIMARY KEY,
                order_id BIGINT NOT NULL REFERENCES orders(id),
                position INT NOT NULL,
                pizza_id BIGINT NOT NULL REFERENCES pizzas(id),
                quantity INT NOT NULL CHECK (quantity >= 1),
                notes TEXT,
                UNIQUE(order_id, position)
            );
        """)
    logger.info("Schema ready")


async def seed_menu(pool: asyncpg.Pool) -> int:
    """Insert DEFAULT_MENU when the pizzas table is empty. Returns number of pizzas inserted."""
    async with pool.acquire() as conn:
        async with conn.transaction():
            count = await conn.fetchval("SELECT COUNT(*) FROM pizzas;")
            if count:
                return 0
            await conn.executemany(
                """
                INSERT INTO pizzas (name, description, price, available)
                VALUES ($1, $2, $3, $4);
                """,
                [(p.name, p.description, p.price, p.available) for p in DEFAULT_MENU],
            )
    logger.info("Seeded menu with %d pizzas", len(DEFAULT_MENU))
    return len(DEFAULT_MENU)


def _pizza_from_row(row: asyncpg.Record) -> Pizza:
    return Pizza(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        price=row["price"],
        available=row["available"],
    )


class PostgresPizzaCatalog:
    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def find_pizza_by_id(self, pizza_id: int) -> Optional[Pizza]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM pizzas WHERE id = $1;", pizza_id)
        return _pizza_from_row(row) if row is not None else None

    async def list_available(self) -> list[Pizza]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch("SELECT * FROM pizzas WHERE available ORDER BY id;")
        return [_pizza_from_row(r) for r in rows]


_ORDER_COLUMNS = "id, order_code, status, created_at, started_at, completed_at, version"


class PostgresOrderRepository:
    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def save(self, order: Order) -> Order:
        if order.id is None:
            return await self._insert(order)
        return await self._update(order)

    async def _insert(self, order: Order) -> Order:
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                try:
                    row = await conn.fetchrow(
                        """
                        INSERT INTO orders (order_code, status, created_at, started_at, completed_at)
                        VALUES ($1, $2, $3, $4, $5)
                        RETURNING id, version;
                        """,
                        order.order_code,
                        order.status.value,
                        order.created_at,
                        order.started_at,
                        order.completed_at,
                    )
                except UniqueViolationError:
                    raise DuplicateOrderCodeError(order.order_code)
                await conn.executemany(
                    """
                    INSERT INTO order_items (order_id, position, pizza_id, quantity, notes)
                    VALUES ($1, $2, $3, $4, $5);
                    """,
                    [
                        (row["id"], position, item.pizza_id, item.quantity, item.notes)
                        for position, item in enumerate(order.items)
                    ],
                )
        return replace(order, id=row["id"], version=row["version"])

    async def _update(self, order: Order) -> Order:
        # items are fixed at creation; only status and its timestamps move
        async with self._pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE orders
                SET status = $1, started_at = $2, completed_at = $3, version = version + 1
                WHERE id = $4 AND version = $5;
                """,
                order.status.value,
                order.started_at,
                order.completed_at,
                order.id,
                order.version,
            )
        if result != "UPDATE 1":
            raise StaleOrderError(order.order_code)
        return replace(order, version=order.version + 1)

    async def find_by_code(self, order_code: str) -> Optional[Order]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_ORDER_COLUMNS} FROM orders WHERE order_code = $1;",
                order_code,
            )
            if row is None:
                return None
            orders = await self._with_items(conn, [row])
        return orders[0]

    async def find_by_status(self, status: OrderStatus) -> list[Order]:
        return await self.find_by_status_in([status])

    async def find_by_status_in(self, statuses: Sequence[OrderStatus]) -> list[Order]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_ORDER_COLUMNS} FROM orders
                WHERE status = ANY($1::varchar[])
                ORDER BY created_at ASC, id ASC;
                """,
                [OrderStatus(s).value for s in statuses],
            )
            return await self._with_items(conn, rows)

    async def _with_items(self, conn: asyncpg.Connection, rows: list) -> list[Order]:
        if not rows:
            return []
        item_rows = await conn.fetch(
            """
            SELECT oi.order_id, oi.pizza_id, p.name AS pizza_name, oi.quantity, oi.notes
            FROM order_items oi
            JOIN pizzas p ON p.id = oi.pizza_id
            WHERE oi.order_id = ANY($1::bigint[])
            ORDER BY oi.order_id, oi.position;
            """,
            [r["id"] for r in rows],
        )
        items: dict[int, list[OrderItem]] = {}
        for r in item_rows:
            items.setdefault(r["order_id"], []).append(
                OrderItem(
                    pizza_id=r["pizza_id"],
                    pizza_name=r["pizza_name"],
                    quantity=r["quantity"],
                    notes=r["notes"],
                )
            )
        return [
            Order(
                id=r["id"],
                order_code=r["order_code"],
                status=OrderStatus(r["status"]),
                items=tuple(items.get(r["id"], [])),
                created_at=r["created_at"],
                started_at=r["started_at"],
                completed_at=r["completed_at"],
                version=r["version"],
            )
            for r in rows
        ]
