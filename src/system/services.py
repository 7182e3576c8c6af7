from collections.abc import Awaitable
import logging

from redis.asyncio import Redis
import sentry_sdk

from src.core.errors.exceptions import InfrastructureException, SigningError
from src.system.schemas import HealthCheckResponse
from src.user.auth.context import TokenContext


class HealthService:
    def __init__(self, redis_client: Redis, token_context: TokenContext) -> None:
        self.redis_client = redis_client
        self.token_context = token_context
        self.logger = logging.getLogger(__name__)

    async def get_status(self) -> HealthCheckResponse:
        redis_is_ok = await self._check_redis()
        active_kid = self._active_kid()
        if not redis_is_ok or active_kid is None:
            raise InfrastructureException(
                "System health check failed",
                additional_info={
                    "redis": redis_is_ok,
                    "signing_key": active_kid is not None,
                },
            )
        return HealthCheckResponse(status="ok", active_kid=active_kid)

    def _active_kid(self) -> str | None:
        try:
            return self.token_context.key_ring.active.kid
        except SigningError:
            self.logger.error("Health check: no usable signing key")
            return None

    async def _check_redis(self) -> bool:
        # The revocation store lives in Redis; without it every token is rejected
        try:
            ping_result = self.redis_client.ping()
            if isinstance(ping_result, Awaitable):
                return bool(await ping_result)
            return bool(ping_result)
        except Exception as exc:
            self.logger.error("Redis health check failed", exc_info=exc)
            sentry_sdk.capture_exception(exc)
            return False
