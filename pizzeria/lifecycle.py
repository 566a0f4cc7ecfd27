"""
Order lifecycle: customers create orders and poll status by code; staff take the
next order, mark it ready and complete it.

Every status change is read -> validate -> compare-and-swap save. A lost race
(StaleOrderError) re-reads and re-validates instead of overwriting, so an order
is claimed at most once and a repeated staff action fails with IllegalTransitionError.
"""
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Sequence

from pizzeria.codes import DEFAULT_ORDER_CODE_LENGTH, generate_order_code
from pizzeria.config import Settings
from pizzeria.errors import (
    DuplicateOrderCodeError,
    IllegalTransitionError,
    OrderCodeExhaustedError,
    OrderNotFoundError,
    PizzaNotFoundError,
    QueueEmptyError,
    StaleOrderError,
)
from pizzeria.metrics import order_claim_conflicts_total, order_transitions_total, orders_created_total
from pizzeria.models import Order, OrderItem
from pizzeria.order_state import DEFAULT_LOCALE, OrderStatus, describe_status, is_valid_transition, status_message
from pizzeria.queue import active_queue, next_to_prepare
from pizzeria.repository import OrderRepository, PizzaCatalog
from pizzeria.schemas import OrderItemResponse, OrderResponse, OrderStatusResponse, PizzaItemDto

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def apply_transition(order: Order, target: OrderStatus, now: datetime) -> Order:
    """Return order moved to target, stamping started_at / completed_at where due."""
    if not is_valid_transition(order.status, target):
        raise IllegalTransitionError(order.status, target)
    changes: dict = {"status": target}
    if target is OrderStatus.IN_PREPARATION:
        changes["started_at"] = now
    elif target is OrderStatus.COMPLETED:
        changes["completed_at"] = now
    return replace(order, **changes)


class OrderLifecycleManager:
    def __init__(
        self,
        orders: OrderRepository,
        catalog: PizzaCatalog,
        *,
        locale: str = DEFAULT_LOCALE,
        claim_max_retries: int = 3,
        code_length: int = DEFAULT_ORDER_CODE_LENGTH,
        code_max_attempts: int = 5,
        clock: Callable[[], datetime] = utcnow,
        code_generator: Callable[[int], str] = generate_order_code,
    ) -> None:
        self._orders = orders
        self._catalog = catalog
        self._locale = locale
        self._claim_max_retries = claim_max_retries
        self._code_length = code_length
        self._code_max_attempts = code_max_attempts
        self._clock = clock
        self._code_generator = code_generator

    @classmethod
    def from_settings(cls, orders: OrderRepository, catalog: PizzaCatalog, settings: Settings) -> "OrderLifecycleManager":
        return cls(
            orders,
            catalog,
            locale=settings.status_locale,
            claim_max_retries=settings.claim_max_retries,
            code_length=settings.order_code_length,
            code_max_attempts=settings.order_code_max_attempts,
        )

    # -------------------- customer operations --------------------

    async def create_order(self, items: Sequence[PizzaItemDto]) -> OrderResponse:
        """
        Resolve every pizza first, then persist the order in one save.
        Any unknown pizza raises PizzaNotFoundError before anything is written.
        """
        if not items:
            raise ValueError("Order must contain at least one item")
        logger.info("Creating new order with %d items", len(items))

        resolved: list[OrderItem] = []
        for line in items:
            pizza = await self._catalog.find_pizza_by_id(line.pizza_id)
            if pizza is None:
                raise PizzaNotFoundError(line.pizza_id)
            resolved.append(
                OrderItem(
                    pizza_id=pizza.id,
                    pizza_name=pizza.name,
                    quantity=line.quantity,
                    notes=line.notes,
                )
            )

        for attempt in range(1, self._code_max_attempts + 1):
            order = Order(
                id=None,
                order_code=self._code_generator(self._code_length),
                status=OrderStatus.PENDING,
                items=tuple(resolved),
                created_at=self._clock(),
            )
            try:
                saved = await self._orders.save(order)
            except DuplicateOrderCodeError:
                logger.warning(
                    "Order code collision on %s (attempt %d/%d), regenerating",
                    order.order_code,
                    attempt,
                    self._code_max_attempts,
                )
                continue
            orders_created_total.inc()
            logger.info("Order created with code: %s", saved.order_code)
            return self._to_response(saved)

        raise OrderCodeExhaustedError(self._code_max_attempts)

    async def get_order_status(self, order_code: str) -> OrderStatusResponse:
        order = await self._find_by_code(order_code)
        return OrderStatusResponse(
            order_code=order.order_code,
            status=order.status,
            status_description=describe_status(order.status, self._locale),
            message=status_message(order.status, self._locale),
        )

    async def get_order(self, order_code: str) -> OrderResponse:
        return self._to_response(await self._find_by_code(order_code))

    # -------------------- staff operations --------------------

    async def get_order_queue(self) -> list[OrderResponse]:
        return [self._to_response(o) for o in await active_queue(self._orders)]

    async def take_next_order(self) -> OrderResponse:
        """Claim the oldest PENDING order. Losing a race re-selects; QueueEmptyError when none is left."""
        for attempt in range(self._claim_max_retries + 1):
            order = await next_to_prepare(self._orders)
            if order is None:
                raise QueueEmptyError()
            claimed = apply_transition(order, OrderStatus.IN_PREPARATION, self._clock())
            try:
                saved = await self._orders.save(claimed)
            except StaleOrderError:
                order_claim_conflicts_total.inc()
                logger.info(
                    "Order %s was claimed concurrently (attempt %d/%d), re-selecting",
                    order.order_code,
                    attempt + 1,
                    self._claim_max_retries + 1,
                )
                continue
            order_transitions_total.labels(to_status=saved.status.value).inc()
            logger.info("Order %s taken for preparation", saved.order_code)
            return self._to_response(saved)

        logger.warning("Gave up claiming after %d conflicting attempts", self._claim_max_retries + 1)
        raise QueueEmptyError("No pending order could be claimed, queue is contended")

    async def mark_ready(self, order_code: str) -> OrderResponse:
        saved = await self._advance(order_code, OrderStatus.READY)
        logger.info("Order %s marked as ready", saved.order_code)
        return self._to_response(saved)

    async def complete_order(self, order_code: str) -> OrderResponse:
        saved = await self._advance(order_code, OrderStatus.COMPLETED)
        logger.info("Order %s completed", saved.order_code)
        return self._to_response(saved)

    # -------------------- helpers --------------------

    async def _find_by_code(self, order_code: str) -> Order:
        order = await self._orders.find_by_code(order_code)
        if order is None:
            raise OrderNotFoundError(order_code)
        return order

    async def _advance(self, order_code: str, target: OrderStatus) -> Order:
        """Re-read and re-validate on conflict; the winner's change usually makes the retry illegal."""
        last_error: StaleOrderError | None = None
        for _ in range(self._claim_max_retries + 1):
            order = await self._find_by_code(order_code)
            updated = apply_transition(order, target, self._clock())
            try:
                saved = await self._orders.save(updated)
            except StaleOrderError as e:
                logger.info("Order %s changed while moving to %s, retrying", order_code, target.value)
                last_error = e
                continue
            order_transitions_total.labels(to_status=target.value).inc()
            return saved
        raise last_error

    def _to_response(self, order: Order) -> OrderResponse:
        return OrderResponse(
            id=order.id,
            order_code=order.order_code,
            status=order.status,
            status_description=describe_status(order.status, self._locale),
            items=[
                OrderItemResponse(pizza_name=i.pizza_name, quantity=i.quantity, notes=i.notes)
                for i in order.items
            ],
            created_at=order.created_at,
            started_at=order.started_at,
            completed_at=order.completed_at,
        )
