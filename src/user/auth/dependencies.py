from collections.abc import Callable
from typing import Annotated, cast

from fastapi import Depends, Request, Security
from fastapi.security.api_key import APIKeyHeader
from fastapi.security.utils import get_authorization_scheme_param

from src.core.errors.exceptions import (
    InfrastructureException,
    InvalidTokenError,
    PermissionDeniedException,
)
from src.user.auth.context import TokenContext
from src.user.auth.issuer import TokenIssuer
from src.user.auth.jwt_payload_schema import ACCESS_TOKEN, JWTPayload
from src.user.auth.refresh import RefreshCoordinator
from src.user.auth.verifier import TokenVerifier

# auto_error is off so a missing header yields the same 401 as a bad token
access_token_header = APIKeyHeader(
    name="Authorization", scheme_name="access-token", auto_error=False
)


async def get_token_context(request: Request) -> TokenContext:
    """
    Provide the token context stored on app.state by the lifespan.
    """
    context = getattr(request.app.state, "token_context", None)
    if context is None:
        raise InfrastructureException("Token context is not initialized")
    return cast(TokenContext, context)


async def get_token_issuer(
    context: TokenContext = Depends(get_token_context),
) -> TokenIssuer:
    return TokenIssuer(context)


async def get_token_verifier(
    context: TokenContext = Depends(get_token_context),
) -> TokenVerifier:
    return TokenVerifier(context)


async def get_refresh_coordinator(
    context: TokenContext = Depends(get_token_context),
) -> RefreshCoordinator:
    return RefreshCoordinator(context)


async def get_current_claims(
    token: str | None = Security(access_token_header),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> JWTPayload:
    """
    Verify the bearer access token of the request and return its claims.

    The header must use the Bearer scheme. Refresh tokens are rejected here:
    they are only good for /auth/refresh.

    Raises:
        InvalidTokenError: If the header is missing, lacks the Bearer scheme
            or the token is invalid
    """
    if not token:
        raise InvalidTokenError("missing token")
    scheme, credentials = get_authorization_scheme_param(token)
    if scheme.lower() != "bearer" or not credentials:
        raise InvalidTokenError("missing bearer scheme")
    return await verifier.verify(credentials, expected_mode=ACCESS_TOKEN)


def require_roles(
    *roles: str,
) -> Callable[[JWTPayload], JWTPayload]:
    """
    Dependency factory: the access token must carry at least one of roles.
    """
    required = set(roles)

    def checker(
        claims: Annotated[JWTPayload, Depends(get_current_claims)],
    ) -> JWTPayload:
        granted = set(claims.get("roles") or [])
        if required and not required & granted:
            raise PermissionDeniedException(
                "Permission denied",
                additional_info={"subject": claims["sub"], "required": sorted(required)},
            )
        return claims

    return checker
