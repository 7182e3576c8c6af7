from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, Mock

from fastapi import FastAPI
import pytest

from src.main import lifespan as lifespan_module
from src.main.lifespan import lifespan
from src.user.auth.context import TokenContext
from src.user.auth.revocation import RedisRevocationStore
from src.user.repositories import InMemoryUserRepository
from tests.fakes.redis import InMemoryRedis


@pytest.mark.asyncio
async def test_lifespan_initializes_and_shutdowns(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    init_sentry = Mock()
    redis_shutdown = AsyncMock()
    fake_redis = InMemoryRedis()

    async def redis_startup(app: FastAPI, url: str, **_: Any) -> None:
        app.state.redis_client = fake_redis

    monkeypatch.setattr(lifespan_module, "init_sentry", init_sentry)
    monkeypatch.setattr(lifespan_module, "on_redis_startup", redis_startup)
    monkeypatch.setattr(lifespan_module, "on_redis_shutdown", redis_shutdown)

    app = FastAPI()
    async with lifespan(app):
        context = app.state.token_context
        assert isinstance(context, TokenContext)
        assert isinstance(context.revocation_store, RedisRevocationStore)
        assert context.revocation_store.redis_client is fake_redis
        assert isinstance(app.state.user_repository, InMemoryUserRepository)

    init_sentry.assert_called_once()
    redis_shutdown.assert_awaited_once_with(app)
