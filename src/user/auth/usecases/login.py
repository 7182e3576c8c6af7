from fastapi import Depends

from loggers import get_logger
from src.core.errors.exceptions import (
    PermissionDeniedException,
    UnauthorizedException,
)
from src.core.utils.security import hash_password, mask_username, verify_password
from src.user.auth.dependencies import get_token_issuer
from src.user.auth.issuer import TokenIssuer
from src.user.auth.schemas import LoginUserModel, TokenModel
from src.user.dependencies import get_user_repository
from src.user.repositories import InMemoryUserRepository

INVALID_CREDENTIALS_MESSAGE = "Incorrect username or password."
INVALID_CREDENTIALS_PASSWORD_HASH = hash_password("dummy-password")
logger = get_logger(__name__)


class LoginUserUseCase:
    """Use case for logging in user."""

    def __init__(
        self,
        users: InMemoryUserRepository,
        issuer: TokenIssuer,
    ) -> None:
        self.users = users
        self.issuer = issuer

    async def execute(self, data: LoginUserModel) -> TokenModel:
        user = await self.users.get_by_username(data.username)
        if not user:
            logger.debug(
                "[Login] User '%s' not found.", mask_username(data.username)
            )
            # Same cost as a real check so response time does not leak existence
            await verify_password(data.password, INVALID_CREDENTIALS_PASSWORD_HASH)
            raise UnauthorizedException(INVALID_CREDENTIALS_MESSAGE)

        if not await verify_password(data.password, user.password_hash):
            logger.debug(
                "[Login] Incorrect password for user '%s'",
                mask_username(data.username),
            )
            raise UnauthorizedException(INVALID_CREDENTIALS_MESSAGE)

        if not user.is_active:
            logger.info("[Login] User '%s' is blocked.", mask_username(data.username))
            raise PermissionDeniedException("User is blocked")

        pair = await self.issuer.issue_tokens(user.id, user.token_claims)
        logger.info("[Login] Issued tokens for user '%s'", mask_username(user.username))
        return TokenModel.from_pair(pair, self.issuer.context.now())


def get_login_user_use_case(
    users: InMemoryUserRepository = Depends(get_user_repository),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> LoginUserUseCase:
    return LoginUserUseCase(users=users, issuer=issuer)
