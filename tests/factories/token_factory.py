from __future__ import annotations

import base64
from datetime import datetime, timedelta
import json
from typing import Any
from uuid import uuid4

import jwt

from src.core.utils.datetime_utils import to_timestamp
from src.user.auth.jwt_payload_schema import ACCESS_TOKEN, REFRESH_TOKEN, TokenMode

TEST_SECRET = "unit-test-signing-secret-0123456789abcdef"
TEST_KID = "test-key"
TEST_ISSUER = "token-auth-service"


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def build_payload(
    subject: str,
    *,
    now: datetime,
    mode: TokenMode = ACCESS_TOKEN,
    expires_in: timedelta = timedelta(minutes=5),
    family: str | None = None,
    jti: str | None = None,
    issuer: str = TEST_ISSUER,
    **claims: Any,
) -> dict[str, Any]:
    return {
        **claims,
        "sub": subject,
        "iss": issuer,
        "iat": to_timestamp(now),
        "exp": to_timestamp(now + expires_in),
        "jti": jti or str(uuid4()),
        "mode": mode,
        "family": family or str(uuid4()),
    }


def build_refresh_payload(
    subject: str, *, now: datetime, **kwargs: Any
) -> dict[str, Any]:
    kwargs.setdefault("expires_in", timedelta(minutes=15))
    return build_payload(subject, now=now, mode=REFRESH_TOKEN, **kwargs)


def encode_payload(
    payload: dict[str, Any],
    *,
    key: str = TEST_SECRET,
    algorithm: str = "HS256",
    kid: str | None = TEST_KID,
) -> str:
    headers = {"kid": kid} if kid is not None else None
    return jwt.encode(payload, key, algorithm=algorithm, headers=headers)


def encode_unsigned(payload: dict[str, Any], *, kid: str | None = TEST_KID) -> str:
    """alg=none token with an empty signature segment."""
    header: dict[str, Any] = {"alg": "none", "typ": "JWT"}
    if kid is not None:
        header["kid"] = kid
    return ".".join(
        [
            _b64url(json.dumps(header).encode()),
            _b64url(json.dumps(payload).encode()),
            "",
        ]
    )


def replace_claims(token: str, **claims: Any) -> str:
    """Rewrite payload claims while keeping the original header and signature."""
    header, payload, signature = token.split(".")
    data = json.loads(_b64url_decode(payload))
    data.update(claims)
    return ".".join([header, _b64url(json.dumps(data).encode()), signature])
