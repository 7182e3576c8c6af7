from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from src.core.redis.lifecycle import on_redis_shutdown, on_redis_startup
from src.main.config import config
from src.main.sentry import init_sentry
from src.user.auth.context import build_token_context
from src.user.repositories import InMemoryUserRepository

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    init_sentry()
    await on_redis_startup(
        app,
        config.redis.dsn,
        socket_timeout=config.redis.REVOCATION_STORE_TIMEOUT_SECONDS,
    )

    app.state.token_context = build_token_context(config, app.state.redis_client)
    app.state.user_repository = InMemoryUserRepository.from_settings(
        config.auth.AUTH_USERS
    )
    logger.info("Token context ready (%s)", config.jwt.JWT_ALGORITHM)

    yield

    await on_redis_shutdown(app)
