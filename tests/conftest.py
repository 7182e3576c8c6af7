from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime, timedelta
import os

os.environ.setdefault("TESTING", "true")
os.environ.setdefault("JWT_SECRET_KEY", "settings-signing-secret-0123456789abcdef")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi import FastAPI  # noqa: E402
import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from src.core.redis.dependencies import get_redis_client  # noqa: E402
from src.core.utils.security import hash_password  # noqa: E402
from src.main.web import get_application  # noqa: E402
from src.user.auth.context import TokenContext, TokenSettings  # noqa: E402
from src.user.auth.dependencies import get_token_context  # noqa: E402
from src.user.auth.keys import KeyRing, SigningKey  # noqa: E402
from src.user.auth.revocation import RedisRevocationStore  # noqa: E402
from src.user.dependencies import get_user_repository  # noqa: E402
from src.user.repositories import InMemoryUserRepository  # noqa: E402
from tests.factories.token_factory import TEST_ISSUER, TEST_KID, TEST_SECRET  # noqa: E402
from tests.factories.user_factory import TEST_PASSWORD, build_user  # noqa: E402
from tests.fakes.redis import InMemoryRedis  # noqa: E402
from tests.helpers.overrides import DependencyOverrides  # noqa: E402
from tests.helpers.providers import FrozenClock, ProvideValue  # noqa: E402


@pytest.fixture(scope="session")
def password_hash() -> str:
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def signing_key() -> SigningKey:
    return SigningKey.from_secret(TEST_SECRET, kid=TEST_KID)


@pytest.fixture
def key_ring(signing_key: SigningKey) -> KeyRing:
    return KeyRing(active=signing_key)


@pytest.fixture
def token_settings() -> TokenSettings:
    return TokenSettings(
        issuer=TEST_ISSUER,
        access_token_ttl=timedelta(minutes=5),
        refresh_token_ttl=timedelta(minutes=15),
    )


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def revocation_store(fake_redis: InMemoryRedis) -> RedisRevocationStore:
    return RedisRevocationStore(fake_redis)  # type: ignore[arg-type]


@pytest.fixture
def token_context(
    key_ring: KeyRing,
    token_settings: TokenSettings,
    revocation_store: RedisRevocationStore,
    clock: FrozenClock,
) -> TokenContext:
    return TokenContext(
        key_ring=key_ring,
        settings=token_settings,
        revocation_store=revocation_store,
        clock=clock,
    )


@pytest.fixture
def user_repository(password_hash: str) -> InMemoryUserRepository:
    return InMemoryUserRepository(
        [
            build_user(password_hash=password_hash, user_id="user-1"),
            build_user("blocked", password_hash=password_hash, is_active=False),
            build_user(
                "admin", password_hash=password_hash, roles=["admin", "user"]
            ),
        ]
    )


@pytest.fixture
def app() -> FastAPI:
    return get_application()


@pytest.fixture
def dependency_overrides(app: FastAPI) -> Generator[DependencyOverrides]:
    overrides = DependencyOverrides(app)
    yield overrides
    overrides.reset()


@pytest.fixture
def app_with_fakes(
    app: FastAPI,
    dependency_overrides: DependencyOverrides,
    fake_redis: InMemoryRedis,
    token_context: TokenContext,
    user_repository: InMemoryUserRepository,
) -> FastAPI:
    dependency_overrides.set(get_redis_client, ProvideValue(fake_redis))
    dependency_overrides.set(get_token_context, ProvideValue(token_context))
    dependency_overrides.set(get_user_repository, ProvideValue(user_repository))
    return app


@pytest_asyncio.fixture
async def async_client_with_fakes(
    app_with_fakes: FastAPI,
) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app_with_fakes)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client
