"""
Revocation store: blacklist of token ids and registry of refresh-token families.

Entries carry a TTL equal to the remaining token lifetime, so the store never
grows past the set of tokens that could still be presented. Lookups are
bounded by a short timeout; callers treat any store failure as a rejected
token (fail closed).
"""

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Awaitable
from enum import StrEnum
from typing import Any, TypeVar, cast

from redis.asyncio import Redis
import redis.exceptions as redis_exc

from loggers import get_logger
from src.core.errors.exceptions import (
    RevocationStoreError,
    RevocationStoreTimeoutError,
)
from src.user.auth.redis_scripts import CONSUME_REFRESH_TOKEN_SCRIPT

logger = get_logger(__name__)

T = TypeVar("T")


class ConsumeResult(StrEnum):
    OK = "OK"
    REUSED = "REUSED"
    INVALID = "INVALID"


class RevocationStore(ABC):
    @abstractmethod
    async def register_family(self, family: str, ttl_seconds: int) -> None:
        """Mark a refresh-token family as active for ttl_seconds."""
        raise NotImplementedError

    @abstractmethod
    async def is_family_active(self, family: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def revoke_family(self, family: str) -> None:
        """Invalidate every refresh token of a family."""
        raise NotImplementedError

    @abstractmethod
    async def revoke(self, jti: str, ttl_seconds: int) -> None:
        """Blacklist a single token id until it would have expired anyway."""
        raise NotImplementedError

    @abstractmethod
    async def is_revoked(self, jti: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def consume_refresh(
        self, jti: str, family: str, used_ttl_seconds: int
    ) -> ConsumeResult:
        """Atomically mark a refresh token as used."""
        raise NotImplementedError


class RedisRevocationStore(RevocationStore):
    def __init__(
        self,
        redis_client: Redis,
        *,
        timeout_seconds: float = 0.5,
        key_prefix: str = "auth",
    ) -> None:
        self.redis_client = redis_client
        self.timeout_seconds = timeout_seconds
        self.key_prefix = key_prefix

    def family_key(self, family: str) -> str:
        return f"{self.key_prefix}:family:{family}"

    def revoked_key(self, jti: str) -> str:
        return f"{self.key_prefix}:revoked:{jti}"

    def used_key(self, jti: str) -> str:
        return f"{self.key_prefix}:used:{jti}"

    async def _run(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except (asyncio.TimeoutError, redis_exc.TimeoutError) as exc:
            logger.warning(
                "[RevocationStore] %s timed out after %ss",
                operation,
                self.timeout_seconds,
            )
            raise RevocationStoreTimeoutError(
                "revocation store timeout", {"operation": operation}
            ) from exc
        except redis_exc.RedisError as exc:
            logger.error("[RevocationStore] %s failed: %s", operation, exc)
            raise RevocationStoreError(
                "revocation store unavailable", {"operation": operation}
            ) from exc

    async def register_family(self, family: str, ttl_seconds: int) -> None:
        await self._run(
            "register_family",
            self.redis_client.set(
                self.family_key(family), "active", ex=max(1, int(ttl_seconds))
            ),
        )

    async def is_family_active(self, family: str) -> bool:
        result = await self._run(
            "is_family_active", self.redis_client.exists(self.family_key(family))
        )
        return bool(result)

    async def revoke_family(self, family: str) -> None:
        await self._run(
            "revoke_family", self.redis_client.delete(self.family_key(family))
        )

    async def revoke(self, jti: str, ttl_seconds: int) -> None:
        await self._run(
            "revoke",
            self.redis_client.set(
                self.revoked_key(jti), "revoked", ex=max(1, int(ttl_seconds))
            ),
        )

    async def is_revoked(self, jti: str) -> bool:
        result = await self._run(
            "is_revoked", self.redis_client.exists(self.revoked_key(jti))
        )
        return bool(result)

    async def consume_refresh(
        self, jti: str, family: str, used_ttl_seconds: int
    ) -> ConsumeResult:
        result = await self._run(
            "consume_refresh",
            cast(
                Awaitable[Any],
                self.redis_client.eval(
                    CONSUME_REFRESH_TOKEN_SCRIPT,
                    2,  # Number of keys
                    self.family_key(family),
                    self.used_key(jti),
                    str(max(1, int(used_ttl_seconds))),
                ),
            ),
        )
        if isinstance(result, (bytes, bytearray)):
            result = result.decode()
        return ConsumeResult(result)
