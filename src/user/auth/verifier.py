from typing import Any, cast

import jwt

from loggers import get_logger
from src.core.errors.exceptions import InvalidTokenError
from src.user.auth.context import TokenContext
from src.user.auth.jwt_payload_schema import (
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    REQUIRED_CLAIMS,
    JWTPayload,
    TokenMode,
)

logger = get_logger(__name__)


def strip_bearer(token: str) -> str:
    """Remove an optional 'Bearer ' prefix from an Authorization value."""
    token = token.strip()
    if token.lower().startswith("bearer "):
        token = token[7:].strip()
    return token


class TokenVerifier:
    """
    Verifies tokens issued by TokenIssuer.

    Checks run from cheapest to most expensive: structure, header algorithm
    and key id, signature, issuer and required claims, expiry against the
    context clock, token kind, and finally the revocation store.
    """

    def __init__(self, context: TokenContext) -> None:
        self.context = context

    def _decode(self, token: str) -> JWTPayload:
        segments = token.split(".")
        if len(segments) != 3 or not segments[0] or not segments[1]:
            raise InvalidTokenError("malformed")

        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as exc:
            raise InvalidTokenError("malformed") from exc

        algorithm = header.get("alg")
        if not isinstance(algorithm, str) or algorithm.lower() == "none":
            raise InvalidTokenError("unsigned token")

        kid = header.get("kid")
        key = self.context.key_ring.get(kid)
        if key is None:
            raise InvalidTokenError("unknown key", {"kid": kid})
        if algorithm != key.algorithm:
            raise InvalidTokenError("algorithm mismatch", {"alg": algorithm})

        # PyJWT compares signatures in constant time. Time-based claims are
        # checked below against the context clock instead of the wall clock.
        try:
            payload = jwt.decode(
                token,
                key.verification_material,
                algorithms=[key.algorithm],
                issuer=self.context.settings.issuer,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
        except jwt.InvalidSignatureError as exc:
            raise InvalidTokenError("signature mismatch") from exc
        except jwt.InvalidIssuerError as exc:
            raise InvalidTokenError("issuer mismatch") from exc
        except jwt.MissingRequiredClaimError as exc:
            raise InvalidTokenError("missing claims", {"claim": exc.claim}) from exc
        except jwt.PyJWTError as exc:
            raise InvalidTokenError("malformed") from exc

        return cast(JWTPayload, payload)

    def _check_expiry(self, payload: JWTPayload) -> None:
        exp: Any = payload["exp"]
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise InvalidTokenError("malformed", {"claim": "exp"})

        # At exactly the expiration instant the token is already expired
        now = self.context.now().timestamp()
        if now >= exp + self.context.settings.leeway_seconds:
            raise InvalidTokenError("expired")

    async def _check_revocation(self, payload: JWTPayload) -> None:
        store = self.context.revocation_store
        if store is None:
            return

        if await store.is_revoked(payload["jti"]):
            raise InvalidTokenError("revoked")

        family = payload.get("family")
        if family and not await store.is_family_active(family):
            raise InvalidTokenError("revoked", {"family": family})

    async def verify(
        self, token: str, expected_mode: TokenMode | None = None
    ) -> JWTPayload:
        """
        Verify a token and return its claims.

        Args:
            token: The encoded token, with or without a 'Bearer ' prefix
            expected_mode: Reject tokens of any other kind when given

        Returns:
            JWTPayload: The verified claims

        Raises:
            InvalidTokenError: On malformed structure, unsigned or unknown-key
                headers, signature mismatch, expiry, wrong kind or revocation.
                Store failures raise RevocationStoreError (a subclass).
        """
        payload = self._decode(strip_bearer(token))
        self._check_expiry(payload)

        mode = payload["mode"]
        if mode not in (ACCESS_TOKEN, REFRESH_TOKEN):
            raise InvalidTokenError("malformed", {"claim": "mode"})
        if expected_mode is not None and mode != expected_mode:
            raise InvalidTokenError("wrong token type", {"mode": mode})
        if mode == REFRESH_TOKEN and not payload.get("family"):
            raise InvalidTokenError("missing claims", {"claim": "family"})

        await self._check_revocation(payload)

        logger.debug("[TokenVerifier] Accepted %s for %s", mode, payload["sub"])
        return payload
