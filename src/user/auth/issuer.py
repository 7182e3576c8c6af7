from dataclasses import dataclass
from datetime import datetime
from typing import Any, cast
from uuid import uuid4

import jwt

from loggers import get_logger
from src.core.errors.exceptions import (
    InfrastructureException,
    RevocationStoreError,
    SigningError,
)
from src.core.utils.datetime_utils import from_timestamp, to_timestamp
from src.user.auth.context import TokenContext
from src.user.auth.jwt_payload_schema import (
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    REGISTERED_CLAIMS,
    JWTPayload,
    TokenMode,
)

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


def custom_claims(claims: dict[str, Any] | None) -> dict[str, Any]:
    """Claims that are not managed by the issuer itself (roles, tenant, ...)."""
    return {k: v for k, v in (claims or {}).items() if k not in REGISTERED_CLAIMS}


class TokenIssuer:
    """
    Creates signed access and refresh tokens.

    Signing is a pure computation over the active key of the context's key
    ring. The only side effect of issue_tokens is registering the new token
    family in the revocation store, when one is configured.
    """

    def __init__(self, context: TokenContext) -> None:
        self.context = context

    def _encode(self, payload: JWTPayload) -> str:
        key = self.context.key_ring.active
        try:
            encoded = jwt.encode(
                cast(dict[str, Any], payload),
                key.signing_material,
                algorithm=key.algorithm,
                headers={"kid": key.kid},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            raise SigningError(
                "Token signing failed", additional_info={"kid": key.kid}
            ) from exc
        return str(encoded)

    def _build_payload(
        self,
        subject: str,
        claims: dict[str, Any] | None,
        *,
        mode: TokenMode,
        family: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> JWTPayload:
        payload: JWTPayload = {
            "sub": subject,
            "iss": self.context.settings.issuer,
            "iat": to_timestamp(issued_at),
            "exp": to_timestamp(expires_at),
            "jti": str(uuid4()),
            "mode": mode,
            "family": family,
        }
        # Registered claims always override caller-supplied ones
        return cast(JWTPayload, {**custom_claims(claims), **payload})

    def issue_access_token(
        self,
        subject: str,
        claims: dict[str, Any] | None = None,
        *,
        family: str,
        issued_at: datetime | None = None,
        expires_at: datetime | None = None,
    ) -> tuple[str, datetime]:
        """
        Create a signed access token.

        Returns:
            tuple: The encoded token and its expiration time
        """
        issued_at = issued_at or self.context.now()
        expires_at = expires_at or issued_at + self.context.settings.access_token_ttl
        payload = self._build_payload(
            subject,
            claims,
            mode=ACCESS_TOKEN,
            family=family,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        return self._encode(payload), from_timestamp(payload["exp"])

    def issue_refresh_token(
        self,
        subject: str,
        claims: dict[str, Any] | None = None,
        *,
        family: str,
        issued_at: datetime | None = None,
        expires_at: datetime | None = None,
    ) -> tuple[str, datetime]:
        """
        Create a signed refresh token.

        expires_at is passed when rotating, so the replacement keeps the
        absolute expiry of the token it replaces.
        """
        issued_at = issued_at or self.context.now()
        expires_at = expires_at or issued_at + self.context.settings.refresh_token_ttl
        payload = self._build_payload(
            subject,
            claims,
            mode=REFRESH_TOKEN,
            family=family,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        return self._encode(payload), from_timestamp(payload["exp"])

    async def issue_tokens(
        self, subject: str, claims: dict[str, Any] | None = None
    ) -> TokenPair:
        """
        Issue an access/refresh pair for an already authenticated subject.

        Args:
            subject: The subject identifier (user ID)
            claims: Optional custom claims, e.g. {"roles": ["admin"]}

        Returns:
            TokenPair: Both tokens with their expiration times

        Raises:
            SigningError: If the signing key is unavailable
            InfrastructureException: If the token family cannot be registered
        """
        if not subject:
            raise ValueError("Token subject must not be empty")

        family = str(uuid4())
        now = self.context.now()
        access_token, access_expires_at = self.issue_access_token(
            subject, claims, family=family, issued_at=now
        )
        refresh_token, refresh_expires_at = self.issue_refresh_token(
            subject, claims, family=family, issued_at=now
        )

        store = self.context.revocation_store
        if store is not None:
            try:
                await store.register_family(
                    family,
                    int(self.context.settings.refresh_token_ttl.total_seconds()),
                )
            except RevocationStoreError as exc:
                raise InfrastructureException(
                    "Token family registration failed",
                    additional_info={"reason": exc.reason},
                ) from exc

        logger.debug("[TokenIssuer] Issued token family %s", family)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            access_expires_at=access_expires_at,
            refresh_expires_at=refresh_expires_at,
        )
