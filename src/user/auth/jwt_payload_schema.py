from enum import StrEnum
from typing import Literal, NotRequired, TypedDict

TokenMode = Literal["access_token", "refresh_token"]

ACCESS_TOKEN: TokenMode = "access_token"
REFRESH_TOKEN: TokenMode = "refresh_token"

REGISTERED_CLAIMS = frozenset({"sub", "iss", "iat", "exp", "jti", "mode", "family"})
REQUIRED_CLAIMS = ["sub", "iss", "iat", "exp", "jti", "mode"]


class RefreshPolicy(StrEnum):
    """What the refresh endpoint does with the presented refresh token."""

    ROTATE = "rotate"
    REUSE = "reuse"


class JWTPayload(TypedDict):
    """Type definition for JWT token payload"""

    sub: str  # Subject (user ID)
    iss: str  # Issuing service
    iat: int  # Issued-at timestamp
    exp: int  # Expiration timestamp, fixed at issuance
    jti: str  # JWT ID for revocation tracking
    mode: TokenMode
    family: NotRequired[str]  # Token family for rotation tracking
    roles: NotRequired[list[str]]
