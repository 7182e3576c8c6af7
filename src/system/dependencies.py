from fastapi import Depends
from redis.asyncio import Redis

from src.core.redis.dependencies import get_redis_client
from src.system.services import HealthService
from src.user.auth.context import TokenContext
from src.user.auth.dependencies import get_token_context


async def get_health_service(
    redis_client: Redis = Depends(get_redis_client),
    token_context: TokenContext = Depends(get_token_context),
) -> HealthService:
    return HealthService(redis_client=redis_client, token_context=token_context)
