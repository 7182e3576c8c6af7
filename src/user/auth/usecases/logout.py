from fastapi import Depends

from loggers import get_logger
from src.core.errors.exceptions import InfrastructureException, InvalidTokenError
from src.core.schemas import SuccessResponse
from src.user.auth.context import TokenContext
from src.user.auth.dependencies import get_token_context
from src.user.auth.jwt_payload_schema import ACCESS_TOKEN, REFRESH_TOKEN, JWTPayload
from src.user.auth.schemas import LogoutModel
from src.user.auth.verifier import TokenVerifier

logger = get_logger(__name__)


class LogoutUseCase:
    """
    Ends a session: the refresh token's family is revoked and the presented
    tokens are blacklisted until they would have expired.
    """

    def __init__(self, context: TokenContext) -> None:
        self.context = context
        self.verifier = TokenVerifier(context)

    def _remaining_seconds(self, payload: JWTPayload) -> int:
        return max(1, int(payload["exp"] - self.context.now().timestamp()))

    async def execute(
        self, data: LogoutModel, access_token: str | None = None
    ) -> SuccessResponse:
        store = self.context.revocation_store
        if store is None:
            raise InfrastructureException("Logout requires a revocation store")

        refresh_payload = await self.verifier.verify(
            data.refresh_token, expected_mode=REFRESH_TOKEN
        )

        access_payload: JWTPayload | None = None
        if access_token:
            try:
                access_payload = await self.verifier.verify(
                    access_token, expected_mode=ACCESS_TOKEN
                )
            except InvalidTokenError as exc:
                logger.debug("[Logout] Access token not blacklisted: %s", exc.reason)

        await store.revoke(
            refresh_payload["jti"], self._remaining_seconds(refresh_payload)
        )
        await store.revoke_family(refresh_payload["family"])
        if access_payload is not None:
            await store.revoke(
                access_payload["jti"], self._remaining_seconds(access_payload)
            )

        logger.info(
            "[Logout] Revoked token family %s of '%s'",
            refresh_payload["family"],
            refresh_payload["sub"],
        )
        return SuccessResponse(success=True)


def get_logout_use_case(
    context: TokenContext = Depends(get_token_context),
) -> LogoutUseCase:
    return LogoutUseCase(context=context)
