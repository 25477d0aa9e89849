"""StatusCache — short-TTL Redis cache of OrderStatusView.

Key: ``order:status:{order_id}``, JSON payload. Redis is never the source of
truth: every Redis error is logged and behaves as a miss (get) or a no-op
(set / invalidate), so a cache outage never fails a status read.
"""

import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from src.sv_common.redis_client import get_redis
from src.sv_order.application.schemas import OrderStatusView

logger = logging.getLogger(__name__)

_KEY_PREFIX = "order:status:"


def status_key(order_id: str) -> str:
    return f"{_KEY_PREFIX}{order_id}"


class StatusCache:
    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        default_ttl_seconds: int = 300,
    ) -> None:
        self._redis_factory = redis_factory
        self._default_ttl = default_ttl_seconds

    async def get(self, order_id: str) -> OrderStatusView | None:
        try:
            redis = await self._redis_factory()
            raw = await redis.get(status_key(order_id))
        except (RedisError, OSError) as exc:
            logger.warning("Status cache read failed for %s: %r", order_id, exc)
            return None
        if raw is None:
            return None
        try:
            return OrderStatusView.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding malformed status cache entry for %s", order_id)
            return None

    async def set(
        self, order_id: str, view: OrderStatusView, ttl_seconds: int | None = None
    ) -> None:
        try:
            redis = await self._redis_factory()
            await redis.set(
                status_key(order_id),
                view.model_dump_json(),
                ex=ttl_seconds or self._default_ttl,
            )
        except (RedisError, OSError) as exc:
            logger.warning("Status cache write failed for %s: %r", order_id, exc)

    async def invalidate(self, order_id: str) -> None:
        try:
            redis = await self._redis_factory()
            await redis.delete(status_key(order_id))
        except (RedisError, OSError) as exc:
            logger.warning("Status cache invalidate failed for %s: %r", order_id, exc)
