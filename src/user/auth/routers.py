from typing import Annotated

from fastapi import APIRouter, Depends, Security

from src.core.schemas import SuccessResponse
from src.user.auth.dependencies import access_token_header
from src.user.auth.schemas import (
    LoginUserModel,
    LogoutModel,
    RefreshTokenModel,
    TokenModel,
)
from src.user.auth.usecases.get_access_by_refresh import (
    GetTokensByRefreshUseCase,
    get_tokens_by_refresh_use_case,
)
from src.user.auth.usecases.login import LoginUserUseCase, get_login_user_use_case
from src.user.auth.usecases.logout import LogoutUseCase, get_logout_use_case

router = APIRouter()


@router.post("/login", response_model=TokenModel, response_model_by_alias=True)
async def login_user(
    login_form_data: LoginUserModel,
    use_case: Annotated[LoginUserUseCase, Depends(get_login_user_use_case)],
) -> TokenModel:
    """
    Authenticate user and return tokens.
    """
    return await use_case.execute(data=login_form_data)


@router.post("/refresh", response_model=TokenModel, response_model_by_alias=True)
async def refresh_tokens(
    data: RefreshTokenModel,
    use_case: Annotated[
        GetTokensByRefreshUseCase, Depends(get_tokens_by_refresh_use_case)
    ],
) -> TokenModel:
    """
    Exchange a valid refresh token for a new access token.
    """
    return await use_case.execute(data=data)


@router.post("/logout", response_model=SuccessResponse)
async def logout_user(
    data: LogoutModel,
    use_case: Annotated[LogoutUseCase, Depends(get_logout_use_case)],
    access_token: str | None = Security(access_token_header),
) -> SuccessResponse:
    """
    Revoke the session of the given refresh token.
    """
    return await use_case.execute(data=data, access_token=access_token)
