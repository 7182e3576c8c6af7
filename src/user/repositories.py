from collections.abc import Iterable
from typing import Any

from loggers import get_logger
from src.user.models import User

logger = get_logger(__name__)


class InMemoryUserRepository:
    """
    Credential directory keyed by username.

    Seeded once from settings; the service has no database.
    """

    def __init__(self, users: Iterable[User] = ()) -> None:
        self._users: dict[str, User] = {}
        for user in users:
            self.add(user)

    def add(self, user: User) -> User:
        if user.username in self._users:
            raise ValueError(f"Duplicate username {user.username!r}")
        self._users[user.username] = user
        return user

    async def get_by_username(self, username: str) -> User | None:
        return self._users.get(username)

    async def list_users(self) -> list[User]:
        return sorted(self._users.values(), key=lambda user: user.username)

    def __len__(self) -> int:
        return len(self._users)

    @classmethod
    def from_settings(cls, raw_users: list[dict[str, Any]]) -> "InMemoryUserRepository":
        users = [
            User(
                id=str(item.get("id") or item["username"]),
                username=item["username"],
                password_hash=item["password_hash"],
                roles=list(item.get("roles", [])),
                is_active=bool(item.get("is_active", True)),
            )
            for item in raw_users
        ]
        logger.info("Loaded %s user(s) into the credential directory", len(users))
        return cls(users)
