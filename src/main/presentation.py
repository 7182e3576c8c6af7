from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from src.core.errors.exceptions import (
    CoreException,
    InfrastructureException,
    InvalidTokenError,
    PermissionDeniedException,
    UnauthorizedException,
)
from src.core.errors.handlers import (
    CoreExceptionHandler,
    InfrastructureExceptionHandler,
    InvalidTokenErrorHandler,
    PermissionDeniedExceptionHandler,
    RequestValidationExceptionHandler,
    UnauthorizedExceptionHandler,
    ValidationErrorExceptionHandler,
    as_exception_handler,
)
from src.system import routers as system_routers
from src.user import routers as user_routers
from src.user.auth import routers as auth_routers


def include_routers(app: FastAPI) -> None:
    """
    Includes API routers into the FastAPI application.
    """
    app.include_router(auth_routers.router, prefix="/auth", tags=["Auth"])
    app.include_router(user_routers.router, prefix="/users", tags=["Users"])
    app.include_router(system_routers.router, tags=["System"])


def include_exceptions_handlers(app: FastAPI) -> None:
    """
    Registers exception handlers for the custom exceptions.

    Starlette resolves handlers along the exception MRO, so subclasses such as
    InvalidTokenError and SigningError pick the most specific entry.
    """
    app.add_exception_handler(
        InfrastructureException, as_exception_handler(InfrastructureExceptionHandler())
    )
    app.add_exception_handler(
        RequestValidationError,
        as_exception_handler(RequestValidationExceptionHandler()),
    )
    app.add_exception_handler(
        ValidationError, as_exception_handler(ValidationErrorExceptionHandler())
    )
    app.add_exception_handler(
        CoreException,
        as_exception_handler(CoreExceptionHandler()),
    )
    app.add_exception_handler(
        UnauthorizedException, as_exception_handler(UnauthorizedExceptionHandler())
    )
    app.add_exception_handler(
        InvalidTokenError, as_exception_handler(InvalidTokenErrorHandler())
    )
    app.add_exception_handler(
        PermissionDeniedException,
        as_exception_handler(PermissionDeniedExceptionHandler()),
    )
