from datetime import datetime

from src.core.schemas import CamelModel


class CurrentUserViewModel(CamelModel):
    subject: str
    roles: list[str]
    expires_at: datetime


class UserViewModel(CamelModel):
    id: str
    username: str
    roles: list[str]
    is_active: bool
