from functools import lru_cache
import json
import logging
import os
from typing import Any

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


def parse_list_value(v: Any) -> list[str]:
    """
    Accepts a real list, a JSON array string, or a comma/semicolon separated string.
    """
    if v is None:
        return []
    if isinstance(v, list):
        return [str(item) for item in v]
    if isinstance(v, str) and v.strip().startswith("[") and v.strip().endswith("]"):
        try:
            parsed = json.loads(v)
            if isinstance(parsed, list):
                return [str(item) for item in parsed]
        except json.JSONDecodeError:
            pass
    sep = "," if "," in v else ";"
    return [item.strip() for item in v.split(sep) if item.strip()]


class RedisConfig(BaseModel):
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DATABASE: str = "0"

    REVOCATION_STORE_TIMEOUT_SECONDS: float = Field(0.5, gt=0)
    REVOCATION_KEY_PREFIX: str = "auth"

    model_config = ConfigDict(extra="ignore")

    @property
    def dsn(self) -> str:
        return (
            f"redis://:"
            f"{self.REDIS_PASSWORD}@"
            f"{self.REDIS_HOST}:"
            f"{self.REDIS_PORT}/"
            f"{self.REDIS_DATABASE}"
        )


class SentryConfig(BaseModel):
    SENTRY_DSN: str | None = None
    SENTRY_ENV: str = "development"
    SENTRY_ENABLED: bool = False

    model_config = ConfigDict(extra="ignore")


class JWTConfig(BaseModel):
    JWT_SECRET_KEY: str | None = None
    JWT_PRIVATE_KEY: str | None = None
    JWT_PUBLIC_KEY: str | None = None
    JWT_KEY_ID: str = "primary"
    # Retired HMAC keys still accepted for verification, as "kid:secret" items
    JWT_PREVIOUS_KEYS: list[str] = Field(default_factory=list)

    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "token-auth-service"

    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(5, gt=0)
    REFRESH_TOKEN_EXPIRE_MINUTES: int = Field(15, gt=0)
    REFRESH_TOKEN_USED_TTL_SECONDS: int = Field(1_209_600, gt=0)
    REFRESH_TOKEN_ROTATION: bool = True
    JWT_LEEWAY_SECONDS: int = Field(0, ge=0)

    model_config = ConfigDict(extra="ignore")

    @field_validator("JWT_PREVIOUS_KEYS", mode="before")
    @classmethod
    def parse_previous_keys(cls, v: Any) -> list[str]:
        return parse_list_value(v)

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def reject_unsigned_algorithm(cls, value: str) -> str:
        if value.strip().lower() == "none":
            raise ValueError("JWT_ALGORITHM must name a signing algorithm")
        return value.strip()

    @model_validator(mode="after")
    def check_lifetimes(self) -> "JWTConfig":
        if self.REFRESH_TOKEN_EXPIRE_MINUTES <= self.ACCESS_TOKEN_EXPIRE_MINUTES:
            raise ValueError(
                "REFRESH_TOKEN_EXPIRE_MINUTES must be greater than "
                "ACCESS_TOKEN_EXPIRE_MINUTES"
            )
        return self


class AuthConfig(BaseModel):
    # JSON list of {"id", "username", "password_hash", "roles", "is_active"}
    AUTH_USERS: list[dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("AUTH_USERS", mode="before")
    @classmethod
    def parse_users(cls, v: Any) -> list[dict[str, Any]]:
        if v is None or v == "":
            return []
        if isinstance(v, str):
            parsed = json.loads(v)
            if not isinstance(parsed, list):
                raise ValueError("AUTH_USERS must be a JSON list")
            return parsed
        return v


class AppConfig(BaseModel):
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    TESTING: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_LEVEL_FILE: str = "WARNING"
    LOG_DIR: str = "logs"

    CORS_ALLOWED_ORIGINS: list[str] = Field(["*"])
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOWED_METHODS: list[str] = Field(["*"])
    CORS_ALLOWED_HEADERS: list[str] = Field(["*"])
    CORS_EXPOSE_HEADERS: list[str] = Field(["*"])

    PROJECT_NAME: str = "Token Auth Service"

    model_config = ConfigDict(extra="ignore")

    @field_validator(
        "CORS_ALLOWED_ORIGINS",
        "CORS_ALLOWED_METHODS",
        "CORS_ALLOWED_HEADERS",
        "CORS_EXPOSE_HEADERS",
        mode="before",
    )
    @classmethod
    def parse_cors_list(cls, v: Any) -> list[str]:
        return parse_list_value(v)


class Config(BaseModel):
    app: AppConfig
    jwt: JWTConfig
    auth: AuthConfig
    redis: RedisConfig
    sentry: SentryConfig

    model_config = ConfigDict(extra="ignore")


@lru_cache
def get_settings() -> Config:
    """
    Cached settings factory. Override in tests via monkeypatching or dependency overrides.
    """
    env_filename = ".env.test" if os.getenv("TESTING") == "true" else ".env"
    env_file_values = dotenv_values(env_filename)
    merged_env: dict[str, Any] = {
        k: v
        for k, v in {**env_file_values, **dict(os.environ)}.items()
        if v is not None
    }

    return Config(
        app=AppConfig(**merged_env),
        jwt=JWTConfig(**merged_env),
        auth=AuthConfig(**merged_env),
        redis=RedisConfig(**merged_env),
        sentry=SentryConfig(**merged_env),
    )


config = get_settings()
