from dataclasses import dataclass, field


@dataclass(slots=True)
class User:
    id: str
    username: str
    password_hash: str
    roles: list[str] = field(default_factory=list)
    is_active: bool = True

    @property
    def token_claims(self) -> dict[str, list[str]]:
        """Custom claims embedded into every token issued for this user."""
        return {"roles": list(self.roles)}
