import fakeredis
import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient

from _helper import SteppingClock
from pizzeria.lifecycle import OrderLifecycleManager
from pizzeria.main import app
from pizzeria.menu import DEFAULT_MENU
from pizzeria.redis_client import get_redis
from pizzeria.repository import InMemoryOrderRepository, InMemoryPizzaCatalog


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def catalog() -> InMemoryPizzaCatalog:
    return InMemoryPizzaCatalog(DEFAULT_MENU)


@pytest.fixture
def order_store() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def manager(order_store, catalog, clock) -> OrderLifecycleManager:
    return OrderLifecycleManager(order_store, catalog, locale="en", clock=clock)


@pytest.fixture
def fake_redis():
    return fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
async def client(anyio_backend, manager, catalog, fake_redis):
    app.state.manager = manager
    app.state.catalog = catalog
    app.dependency_overrides[get_redis] = lambda: fake_redis
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
