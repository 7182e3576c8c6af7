from loggers import get_logger
from src.core.errors.exceptions import InvalidTokenError
from src.core.utils.datetime_utils import from_timestamp
from src.user.auth.context import TokenContext
from src.user.auth.issuer import TokenIssuer, TokenPair, custom_claims
from src.user.auth.jwt_payload_schema import REFRESH_TOKEN, RefreshPolicy
from src.user.auth.revocation import ConsumeResult
from src.user.auth.verifier import TokenVerifier, strip_bearer

logger = get_logger(__name__)


class RefreshCoordinator:
    """
    Exchanges a refresh token for a new access token.

    With RefreshPolicy.REUSE the presented refresh token is handed back
    unchanged. With RefreshPolicy.ROTATE it is consumed atomically and
    replaced by a new refresh token of the same family that keeps the original
    expiry. Presenting a consumed refresh token again revokes the family.
    """

    def __init__(
        self,
        context: TokenContext,
        issuer: TokenIssuer | None = None,
        verifier: TokenVerifier | None = None,
    ) -> None:
        self.context = context
        self.issuer = issuer or TokenIssuer(context)
        self.verifier = verifier or TokenVerifier(context)

    async def refresh(self, refresh_token: str) -> TokenPair:
        """
        Args:
            refresh_token: A refresh token issued by TokenIssuer

        Returns:
            TokenPair: A new access token and the (possibly rotated) refresh token

        Raises:
            InvalidTokenError: If the refresh token fails verification, was
                already used, or its family is no longer active
            SigningError: If the signing key is unavailable
        """
        refresh_token = strip_bearer(refresh_token)
        payload = await self.verifier.verify(refresh_token, expected_mode=REFRESH_TOKEN)

        subject = payload["sub"]
        family = payload["family"]
        claims = custom_claims(dict(payload))
        now = self.context.now()
        session_expires_at = from_timestamp(payload["exp"])

        # The access token never outlives the session it belongs to
        access_expires_at = min(
            now + self.context.settings.access_token_ttl, session_expires_at
        )
        access_token, access_expires_at = self.issuer.issue_access_token(
            subject,
            claims,
            family=family,
            issued_at=now,
            expires_at=access_expires_at,
        )

        if self.context.settings.refresh_policy == RefreshPolicy.REUSE:
            return TokenPair(
                access_token=access_token,
                refresh_token=refresh_token,
                access_expires_at=access_expires_at,
                refresh_expires_at=session_expires_at,
            )

        # Sign the replacement before consuming, so a signing failure leaves
        # the presented token usable
        new_refresh_token, _ = self.issuer.issue_refresh_token(
            subject,
            claims,
            family=family,
            issued_at=now,
            expires_at=session_expires_at,
        )

        store = self.context.revocation_store
        if store is None:
            raise RuntimeError("Refresh token rotation requires a revocation store")

        remaining_seconds = max(1, int(payload["exp"] - now.timestamp()))
        used_ttl_seconds = min(
            self.context.settings.used_token_ttl_seconds, remaining_seconds
        )
        result = await store.consume_refresh(payload["jti"], family, used_ttl_seconds)

        if result == ConsumeResult.REUSED:
            logger.warning(
                "[RefreshTokens] Refresh token reuse for '%s', revoking family %s",
                subject,
                family,
            )
            await store.revoke_family(family)
            raise InvalidTokenError("refresh token reuse", {"family": family})
        if result == ConsumeResult.INVALID:
            raise InvalidTokenError("revoked", {"family": family})

        logger.debug("[RefreshTokens] Rotated refresh token of family %s", family)
        return TokenPair(
            access_token=access_token,
            refresh_token=new_refresh_token,
            access_expires_at=access_expires_at,
            refresh_expires_at=session_expires_at,
        )
