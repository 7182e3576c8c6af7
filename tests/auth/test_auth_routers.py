import httpx
import pytest

from src.core.errors.exceptions import INVALID_CREDENTIALS_DETAIL
from src.user.auth.context import TokenContext
from src.user.auth.keys import KeyRing
from tests.factories.token_factory import replace_claims
from tests.factories.user_factory import TEST_PASSWORD, TEST_USERNAME
from tests.helpers.providers import FrozenClock

UNIFORM_401 = {"error": "Unauthorized", "message": INVALID_CREDENTIALS_DETAIL}


async def _login(
    client: httpx.AsyncClient,
    username: str = TEST_USERNAME,
    password: str = TEST_PASSWORD,
) -> httpx.Response:
    return await client.post(
        "/auth/login", json={"username": username, "password": password}
    )


@pytest.mark.asyncio
async def test_login_returns_tokens(async_client_with_fakes: httpx.AsyncClient) -> None:
    response = await _login(async_client_with_fakes)

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"accessToken", "refreshToken", "tokenType", "expiresIn"}
    assert body["tokenType"] == "Bearer"
    assert body["expiresIn"] == 300
    assert response.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_login_with_wrong_password(
    async_client_with_fakes: httpx.AsyncClient,
) -> None:
    response = await _login(async_client_with_fakes, password="nope")

    assert response.status_code == 401
    assert response.json() == {
        "error": "Unauthorized",
        "message": "Incorrect username or password.",
    }
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_login_blocked_user_is_forbidden(
    async_client_with_fakes: httpx.AsyncClient,
) -> None:
    response = await _login(async_client_with_fakes, username="blocked")

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_login_validates_body(async_client_with_fakes: httpx.AsyncClient) -> None:
    response = await async_client_with_fakes.post(
        "/auth/login", json={"username": TEST_USERNAME}
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_without_signing_key_is_server_error(
    async_client_with_fakes: httpx.AsyncClient,
    token_context: TokenContext,
) -> None:
    token_context.key_ring = KeyRing()

    response = await _login(async_client_with_fakes)

    assert response.status_code == 500
    assert response.json()["error"] == "Infrastructure error"


@pytest.mark.asyncio
async def test_me_returns_identity(async_client_with_fakes: httpx.AsyncClient) -> None:
    tokens = (await _login(async_client_with_fakes)).json()

    response = await async_client_with_fakes.get(
        "/users/me", headers={"Authorization": f"Bearer {tokens['accessToken']}"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["subject"] == "user-1"
    assert body["roles"] == ["user"]
    assert "expiresAt" in body


@pytest.mark.asyncio
async def test_token_failures_share_one_response(
    async_client_with_fakes: httpx.AsyncClient,
) -> None:
    tokens = (await _login(async_client_with_fakes)).json()
    tampered = replace_claims(tokens["accessToken"], sub="admin-id")

    candidates = [
        None,
        "Bearer not-a-token",
        tokens["accessToken"],
        f"Bearer {tampered}",
        f"Bearer {tokens['refreshToken']}",
    ]
    for authorization in candidates:
        headers = {"Authorization": authorization} if authorization else {}
        response = await async_client_with_fakes.get("/users/me", headers=headers)

        assert response.status_code == 401, authorization
        assert response.json() == UNIFORM_401
        assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_refresh_rotates_tokens(
    async_client_with_fakes: httpx.AsyncClient,
) -> None:
    tokens = (await _login(async_client_with_fakes)).json()

    response = await async_client_with_fakes.post(
        "/auth/refresh", json={"refreshToken": tokens["refreshToken"]}
    )

    assert response.status_code == 200
    assert response.json()["refreshToken"] != tokens["refreshToken"]

    replay = await async_client_with_fakes.post(
        "/auth/refresh", json={"refreshToken": tokens["refreshToken"]}
    )
    assert replay.status_code == 401
    assert replay.json() == UNIFORM_401


@pytest.mark.asyncio
async def test_logout_ends_session(
    async_client_with_fakes: httpx.AsyncClient,
) -> None:
    tokens = (await _login(async_client_with_fakes)).json()
    auth_header = {"Authorization": f"Bearer {tokens['accessToken']}"}

    response = await async_client_with_fakes.post(
        "/auth/logout",
        json={"refreshToken": tokens["refreshToken"]},
        headers=auth_header,
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}

    me = await async_client_with_fakes.get("/users/me", headers=auth_header)
    assert me.status_code == 401

    refresh = await async_client_with_fakes.post(
        "/auth/refresh", json={"refreshToken": tokens["refreshToken"]}
    )
    assert refresh.status_code == 401


@pytest.mark.asyncio
async def test_access_token_scenario(
    async_client_with_fakes: httpx.AsyncClient, clock: FrozenClock
) -> None:
    """
    Login at t0 gives a 5 minute access token and a 15 minute refresh token.
    At t0+6m the access token is rejected but refreshing works; after t0+15m
    refreshing fails as well.
    """
    login = await _login(async_client_with_fakes, "Abc", "123")
    assert login.status_code == 200
    tokens = login.json()

    clock.advance(minutes=6)
    me = await async_client_with_fakes.get(
        "/users/me", headers={"Authorization": f"Bearer {tokens['accessToken']}"}
    )
    assert me.status_code == 401
    assert me.json() == UNIFORM_401

    refreshed = await async_client_with_fakes.post(
        "/auth/refresh", json={"refreshToken": tokens["refreshToken"]}
    )
    assert refreshed.status_code == 200
    new_tokens = refreshed.json()

    me = await async_client_with_fakes.get(
        "/users/me", headers={"Authorization": f"Bearer {new_tokens['accessToken']}"}
    )
    assert me.status_code == 200
    assert me.json()["subject"] == "user-1"

    clock.advance(minutes=9, seconds=1)
    expired = await async_client_with_fakes.post(
        "/auth/refresh", json={"refreshToken": new_tokens["refreshToken"]}
    )
    assert expired.status_code == 401
    assert expired.json() == UNIFORM_401


@pytest.mark.asyncio
async def test_list_users_requires_admin_role(
    async_client_with_fakes: httpx.AsyncClient,
) -> None:
    tokens = (await _login(async_client_with_fakes)).json()

    response = await async_client_with_fakes.get(
        "/users/", headers={"Authorization": f"Bearer {tokens['accessToken']}"}
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_users_for_admin(
    async_client_with_fakes: httpx.AsyncClient,
) -> None:
    tokens = (await _login(async_client_with_fakes, username="admin")).json()

    response = await async_client_with_fakes.get(
        "/users/", headers={"Authorization": f"Bearer {tokens['accessToken']}"}
    )

    assert response.status_code == 200
    body = response.json()
    assert [user["username"] for user in body] == ["Abc", "admin", "blocked"]
    assert body[0] == {
        "id": "user-1",
        "username": "Abc",
        "roles": ["user"],
        "isActive": True,
    }
