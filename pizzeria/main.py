"""
Pizzeria order service API.
Run: python -m pizzeria.main  (or uvicorn pizzeria.main:app)
"""
import logging
import sys
from collections import Counter
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from pizzeria.config import settings
from pizzeria.db import PostgresOrderRepository, PostgresPizzaCatalog, close_pool, get_pool, init_schema, seed_menu
from pizzeria.errors import (
    IllegalTransitionError,
    OrderCodeExhaustedError,
    OrderNotFoundError,
    PizzaNotFoundError,
    StaleOrderError,
)
from pizzeria.lifecycle import OrderLifecycleManager
from pizzeria.menu import DEFAULT_MENU
from pizzeria.metrics import active_orders, get_metrics_bytes, get_metrics_content_type, order_transitions_rejected_total
from pizzeria.queue import ACTIVE_STATUSES
from pizzeria.redis_client import close_redis, get_redis
from pizzeria.repository import InMemoryOrderRepository, InMemoryPizzaCatalog
from pizzeria.routes import menu, orders, staff

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.storage_backend == "memory":
        catalog = InMemoryPizzaCatalog(DEFAULT_MENU)
        order_store = InMemoryOrderRepository()
        logger.info("Storage backend: in-memory (orders are lost on restart)")
    else:
        pool = await get_pool()
        await init_schema(pool)
        if settings.seed_menu:
            await seed_menu(pool)
        catalog = PostgresPizzaCatalog(pool)
        order_store = PostgresOrderRepository(pool)
        logger.info("Storage backend: postgres")
    app.state.catalog = catalog
    app.state.manager = OrderLifecycleManager.from_settings(order_store, catalog, settings)
    await get_redis()
    yield
    await close_redis()
    await close_pool()


app = FastAPI(title="Pizzeria Order Service", lifespan=lifespan)
app.include_router(orders.router)
app.include_router(staff.router)
app.include_router(menu.router)


def _error_body(status: int, message: str, **extra) -> dict:
    return {
        "message": message,
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **extra,
    }


@app.exception_handler(OrderNotFoundError)
async def order_not_found_handler(request: Request, exc: OrderNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=_error_body(404, str(exc)))


@app.exception_handler(PizzaNotFoundError)
async def pizza_not_found_handler(request: Request, exc: PizzaNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_error_body(400, str(exc), pizza_id=exc.pizza_id))


@app.exception_handler(IllegalTransitionError)
async def illegal_transition_handler(request: Request, exc: IllegalTransitionError) -> JSONResponse:
    order_transitions_rejected_total.labels(
        current_status=exc.current_status.value,
        attempted_status=exc.attempted_status.value,
    ).inc()
    return JSONResponse(
        status_code=400,
        content=_error_body(
            400,
            str(exc),
            current_status=exc.current_status.value,
            attempted_status=exc.attempted_status.value,
        ),
    )


@app.exception_handler(StaleOrderError)
async def stale_order_handler(request: Request, exc: StaleOrderError) -> JSONResponse:
    return JSONResponse(status_code=409, content=_error_body(409, str(exc)))


@app.exception_handler(OrderCodeExhaustedError)
async def code_exhausted_handler(request: Request, exc: OrderCodeExhaustedError) -> JSONResponse:
    logger.error("%s", exc)
    return JSONResponse(status_code=503, content=_error_body(503, "Could not allocate an order code, retry later"))


@app.exception_handler(RequestValidationError)
async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = {
        ".".join(str(part) for part in err["loc"] if part != "body"): err["msg"]
        for err in exc.errors()
    }
    return JSONResponse(
        status_code=400,
        content=_error_body(400, "Validation failed", validation_errors=errors),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error occurred")
    return JSONResponse(status_code=500, content=_error_body(500, "An unexpected error occurred"))


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics(request: Request) -> Response:
    """Prometheus scrape endpoint: order counters plus active queue size per status."""
    queue = await request.app.state.manager.get_order_queue()
    counts = Counter(o.status for o in queue)
    for status in ACTIVE_STATUSES:
        active_orders.labels(status=status.value).set(counts.get(status, 0))
    return Response(
        content=get_metrics_bytes(),
        media_type=get_metrics_content_type(),
    )


def main() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
