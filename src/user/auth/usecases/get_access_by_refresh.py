from fastapi import Depends

from loggers import get_logger
from src.user.auth.dependencies import get_refresh_coordinator
from src.user.auth.refresh import RefreshCoordinator
from src.user.auth.schemas import RefreshTokenModel, TokenModel

logger = get_logger(__name__)


class GetTokensByRefreshUseCase:
    """Use case for refreshing tokens using a refresh token."""

    def __init__(self, coordinator: RefreshCoordinator) -> None:
        self.coordinator = coordinator

    async def execute(self, data: RefreshTokenModel) -> TokenModel:
        pair = await self.coordinator.refresh(data.refresh_token)
        return TokenModel.from_pair(pair, self.coordinator.context.now())


def get_tokens_by_refresh_use_case(
    coordinator: RefreshCoordinator = Depends(get_refresh_coordinator),
) -> GetTokensByRefreshUseCase:
    return GetTokensByRefreshUseCase(coordinator=coordinator)
