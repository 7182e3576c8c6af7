from typing import cast

from fastapi import Request
from redis.asyncio import Redis

from src.core.errors.exceptions import InfrastructureException


async def get_redis_client(request: Request) -> Redis:
    """
    Provide the Redis client stored on app.state by the lifespan.
    """
    redis_client = getattr(request.app.state, "redis_client", None)
    if redis_client is None:
        raise InfrastructureException(
            "Redis client is not initialized",
            additional_info={"hint": "startup lifecycle did not run"},
        )
    return cast(Redis, redis_client)
