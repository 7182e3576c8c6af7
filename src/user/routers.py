from typing import Annotated

from fastapi import APIRouter, Depends

from src.core.utils.datetime_utils import from_timestamp
from src.user.auth.dependencies import get_current_claims, require_roles
from src.user.auth.jwt_payload_schema import JWTPayload
from src.user.dependencies import get_user_repository
from src.user.repositories import InMemoryUserRepository
from src.user.schemas import CurrentUserViewModel, UserViewModel

router = APIRouter()


@router.get("/me", response_model=CurrentUserViewModel, response_model_by_alias=True)
async def get_current_user_info(
    claims: Annotated[JWTPayload, Depends(get_current_claims)],
) -> CurrentUserViewModel:
    """
    Returns the identity carried by the presented access token.
    """
    return CurrentUserViewModel(
        subject=claims["sub"],
        roles=list(claims.get("roles") or []),
        expires_at=from_timestamp(claims["exp"]),
    )


@router.get(
    "/",
    response_model=list[UserViewModel],
    response_model_by_alias=True,
    dependencies=[Depends(require_roles("admin"))],
)
async def list_users(
    repository: Annotated[InMemoryUserRepository, Depends(get_user_repository)],
) -> list[UserViewModel]:
    """
    Lists the credential directory. Admin only.
    """
    return [
        UserViewModel(
            id=user.id,
            username=user.username,
            roles=list(user.roles),
            is_active=user.is_active,
        )
        for user in await repository.list_users()
    ]
