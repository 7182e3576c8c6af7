from datetime import datetime
from typing import Literal

from pydantic import Field

from src.core.schemas import CamelModel
from src.user.auth.issuer import TokenPair


class LoginUserModel(CamelModel):
    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=1, max_length=1024)


class RefreshTokenModel(CamelModel):
    refresh_token: str = Field(min_length=1)


class LogoutModel(CamelModel):
    refresh_token: str = Field(min_length=1)


class TokenModel(CamelModel):
    access_token: str
    refresh_token: str
    token_type: Literal["Bearer"] = "Bearer"
    expires_in: int

    @classmethod
    def from_pair(cls, pair: TokenPair, now: datetime) -> "TokenModel":
        return cls(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=max(0, int((pair.access_expires_at - now).total_seconds())),
        )
