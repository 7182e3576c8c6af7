from typing import cast

from fastapi import Request

from src.core.errors.exceptions import InfrastructureException
from src.user.repositories import InMemoryUserRepository


async def get_user_repository(request: Request) -> InMemoryUserRepository:
    """
    Provide the credential directory stored on app.state by the lifespan.
    """
    repository = getattr(request.app.state, "user_repository", None)
    if repository is None:
        raise InfrastructureException("User repository is not initialized")
    return cast(InMemoryUserRepository, repository)
