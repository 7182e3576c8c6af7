from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from redis.asyncio import Redis

from src.core.utils.datetime_utils import get_utc_now
from src.main.config import Config, JWTConfig
from src.user.auth.jwt_payload_schema import RefreshPolicy
from src.user.auth.keys import KeyRing, build_key_ring
from src.user.auth.revocation import RedisRevocationStore, RevocationStore


@dataclass(frozen=True, slots=True)
class TokenSettings:
    issuer: str
    access_token_ttl: timedelta
    refresh_token_ttl: timedelta
    refresh_policy: RefreshPolicy = RefreshPolicy.ROTATE
    leeway_seconds: int = 0
    used_token_ttl_seconds: int = 1_209_600

    def __post_init__(self) -> None:
        if self.access_token_ttl <= timedelta(0):
            raise ValueError("Access token lifetime must be positive")
        if self.refresh_token_ttl <= self.access_token_ttl:
            raise ValueError("Refresh token must outlive the access token")

    @classmethod
    def from_config(cls, jwt_config: JWTConfig) -> "TokenSettings":
        return cls(
            issuer=jwt_config.JWT_ISSUER,
            access_token_ttl=timedelta(minutes=jwt_config.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_token_ttl=timedelta(
                minutes=jwt_config.REFRESH_TOKEN_EXPIRE_MINUTES
            ),
            refresh_policy=(
                RefreshPolicy.ROTATE
                if jwt_config.REFRESH_TOKEN_ROTATION
                else RefreshPolicy.REUSE
            ),
            leeway_seconds=jwt_config.JWT_LEEWAY_SECONDS,
            used_token_ttl_seconds=jwt_config.REFRESH_TOKEN_USED_TTL_SECONDS,
        )


@dataclass(slots=True)
class TokenContext:
    """
    Everything the issuer, verifier and refresh coordinator share.

    Passed explicitly to each component; the application keeps one instance on
    app.state and tests build their own.
    """

    key_ring: KeyRing
    settings: TokenSettings
    revocation_store: RevocationStore | None = None
    clock: Callable[[], datetime] = get_utc_now

    def __post_init__(self) -> None:
        if (
            self.settings.refresh_policy == RefreshPolicy.ROTATE
            and self.revocation_store is None
        ):
            raise ValueError("Refresh token rotation requires a revocation store")

    def now(self) -> datetime:
        return self.clock()


def build_token_context(app_config: Config, redis_client: Redis | None) -> TokenContext:
    revocation_store = None
    if redis_client is not None:
        revocation_store = RedisRevocationStore(
            redis_client,
            timeout_seconds=app_config.redis.REVOCATION_STORE_TIMEOUT_SECONDS,
            key_prefix=app_config.redis.REVOCATION_KEY_PREFIX,
        )
    return TokenContext(
        key_ring=build_key_ring(app_config.jwt),
        settings=TokenSettings.from_config(app_config.jwt),
        revocation_store=revocation_store,
    )
