"""
Concurrent staff actions: an order is claimed at most once, and a lost race is
retried by re-selecting rather than overwriting the winner.
"""
import asyncio
from dataclasses import replace

import pytest
from prometheus_client import REGISTRY

from _helper import MARGHERITA, MARINARA, line
from pizzeria.errors import IllegalTransitionError, QueueEmptyError
from pizzeria.lifecycle import OrderLifecycleManager, apply_transition
from pizzeria.order_state import OrderStatus
from pizzeria.repository import InMemoryOrderRepository

pytestmark = pytest.mark.anyio


class YieldingOrderRepository(InMemoryOrderRepository):
    """Lets every concurrent caller read before any of them writes."""

    async def find_by_code(self, order_code):
        await asyncio.sleep(0)
        result = await super().find_by_code(order_code)
        await asyncio.sleep(0)
        return result

    async def find_by_status_in(self, statuses):
        await asyncio.sleep(0)
        result = await super().find_by_status_in(statuses)
        await asyncio.sleep(0)
        return result


class RivalClaimRepository(InMemoryOrderRepository):
    """Another staff member claims whatever the caller just selected, `rival_claims` times."""

    def __init__(self, rival_claims: int = 1):
        super().__init__()
        self.rival_claims = rival_claims

    async def find_by_status_in(self, statuses):
        result = await super().find_by_status_in(statuses)
        if self.rival_claims and result and OrderStatus.PENDING in statuses:
            self.rival_claims -= 1
            await self.save(apply_transition(result[0], OrderStatus.IN_PREPARATION, result[0].created_at))
        return result


class AlwaysStaleRepository(InMemoryOrderRepository):
    """Every pending order looks claimable but the write always loses."""

    async def find_by_status_in(self, statuses):
        result = await super().find_by_status_in(statuses)
        return [replace(o, version=o.version - 1) for o in result]


def _conflicts() -> float:
    return REGISTRY.get_sample_value("order_claim_conflicts_total") or 0.0


def _outcomes(results):
    ok = [r for r in results if not isinstance(r, BaseException)]
    failed = [r for r in results if isinstance(r, BaseException)]
    return ok, failed


async def test_two_concurrent_takes_on_one_order(catalog, clock):
    manager = OrderLifecycleManager(YieldingOrderRepository(), catalog, clock=clock)
    order = await manager.create_order([line()])

    results = await asyncio.gather(
        manager.take_next_order(),
        manager.take_next_order(),
        return_exceptions=True,
    )

    ok, failed = _outcomes(results)
    assert [o.order_code for o in ok] == [order.order_code]
    assert len(failed) == 1 and isinstance(failed[0], QueueEmptyError)


async def test_many_staff_never_share_an_order(catalog, clock):
    manager = OrderLifecycleManager(YieldingOrderRepository(), catalog, clock=clock, claim_max_retries=10)
    created = [await manager.create_order([line()]) for _ in range(5)]

    results = await asyncio.gather(*(manager.take_next_order() for _ in range(8)), return_exceptions=True)

    ok, failed = _outcomes(results)
    assert sorted(o.order_code for o in ok) == sorted(o.order_code for o in created)
    assert len(failed) == 3
    assert all(isinstance(e, QueueEmptyError) for e in failed)
    queue = await manager.get_order_queue()
    assert all(o.status is OrderStatus.IN_PREPARATION for o in queue)


async def test_lost_claim_reselects_next_pending(catalog, clock):
    store = RivalClaimRepository(rival_claims=1)
    manager = OrderLifecycleManager(store, catalog, clock=clock)
    first = await manager.create_order([line(MARGHERITA)])
    second = await manager.create_order([line(MARINARA)])
    before = _conflicts()

    taken = await manager.take_next_order()

    assert taken.order_code == second.order_code
    assert (await manager.get_order(first.order_code)).status is OrderStatus.IN_PREPARATION
    assert _conflicts() == before + 1


async def test_lost_claim_on_last_order_reports_empty_queue(catalog, clock):
    manager = OrderLifecycleManager(RivalClaimRepository(rival_claims=1), catalog, clock=clock)
    await manager.create_order([line()])

    with pytest.raises(QueueEmptyError) as exc_info:
        await manager.take_next_order()
    assert str(exc_info.value) == "No pending orders in queue"


async def test_claim_retries_are_bounded(catalog, clock):
    manager = OrderLifecycleManager(AlwaysStaleRepository(), catalog, clock=clock, claim_max_retries=2)
    order = await manager.create_order([line()])
    before = _conflicts()

    with pytest.raises(QueueEmptyError) as exc_info:
        await manager.take_next_order()

    assert "contended" in str(exc_info.value)
    assert _conflicts() == before + 3
    assert (await manager.get_order(order.order_code)).status is OrderStatus.PENDING


async def test_concurrent_mark_ready_on_same_order(catalog, clock):
    manager = OrderLifecycleManager(YieldingOrderRepository(), catalog, clock=clock)
    order = await manager.create_order([line()])
    await manager.take_next_order()

    results = await asyncio.gather(
        manager.mark_ready(order.order_code),
        manager.mark_ready(order.order_code),
        return_exceptions=True,
    )

    ok, failed = _outcomes(results)
    assert len(ok) == 1 and ok[0].status is OrderStatus.READY
    assert len(failed) == 1 and isinstance(failed[0], IllegalTransitionError)
    assert failed[0].current_status is OrderStatus.READY


async def test_different_orders_progress_independently(catalog, clock):
    manager = OrderLifecycleManager(YieldingOrderRepository(), catalog, clock=clock)
    a = await manager.create_order([line()])
    b = await manager.create_order([line()])
    await manager.take_next_order()
    await manager.take_next_order()

    ready = await asyncio.gather(manager.mark_ready(a.order_code), manager.mark_ready(b.order_code))

    assert {o.order_code for o in ready} == {a.order_code, b.order_code}
    assert all(o.status is OrderStatus.READY for o in ready)
