from typing import Any

INVALID_CREDENTIALS_DETAIL = "Could not validate credentials"


class CoreException(Exception):
    def __init__(
        self, message: str | None = None, additional_info: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.additional_info = additional_info


class InfrastructureException(CoreException):
    pass


class SigningError(InfrastructureException):
    """The signing key is missing or unusable; issuance cannot proceed."""


class UnauthorizedException(CoreException):
    pass


class InvalidTokenError(UnauthorizedException):
    """
    A token failed verification.

    The concrete reason (signature mismatch, expired, revoked, ...) is kept in
    additional_info for logs; the client-facing message is always the same.
    """

    def __init__(self, reason: str, additional_info: dict[str, Any] | None = None):
        super().__init__(
            INVALID_CREDENTIALS_DETAIL, {"reason": reason, **(additional_info or {})}
        )
        self.reason = reason


class RevocationStoreError(InvalidTokenError):
    """The revocation store could not answer; the token is rejected."""


class RevocationStoreTimeoutError(RevocationStoreError):
    pass


class PermissionDeniedException(CoreException):
    pass
