import redis.asyncio as redis
from pizzeria.config import settings

_redis: redis.Redis | None = None

IDEMPOTENCY_IN_FLIGHT = ""


async def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        _redis = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def idempotency_key(client_key: str) -> str:
    return f"idempotency:order:{client_key}"


async def check_idempotency(r: redis.Redis, key: str, ttl_seconds: int = 86400) -> str | None:
    """
    Returns None if key is new -> caller should create the order, then remember_order_code.
    Returns the order code stored under key if it was already seen (duplicate submission),
    or IDEMPOTENCY_IN_FLIGHT while the first submission is still being created.
    Uses SET NX: if we set it, we're first; if not, duplicate.
    """
    was_set = await r.set(key, IDEMPOTENCY_IN_FLIGHT, nx=True, ex=ttl_seconds)
    if was_set:
        return None
    existing = await r.get(key)
    return existing if existing is not None else IDEMPOTENCY_IN_FLIGHT


async def remember_order_code(r: redis.Redis, key: str, order_code: str, ttl_seconds: int = 86400) -> None:
    await r.set(key, order_code, ex=ttl_seconds)


async def release_idempotency_key(r: redis.Redis, key: str) -> None:
    """Forget a reservation whose order was never created, so the client can retry."""
    await r.delete(key)
