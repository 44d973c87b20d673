from typing import Protocol, Optional
from dataclasses import dataclass
from datetime import datetime

from ...core.roles import Role


@dataclass
class UserDto:
    id: str
    phone: str
    first_name: str
    last_name: str
    role: Role
    mobile_verified: bool
    created_at: datetime
    updated_at: datetime


class UserRepository(Protocol):
    def get_by_phone(self, phone: str) -> Optional[UserDto]:
        ...

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        ...

    def create(self, phone: str, password_hash: str, first_name: str, last_name: str) -> UserDto:
        """Raises DuplicateError when the phone is already registered."""
        ...

    def get_password_hash(self, user_id: str) -> Optional[str]:
        ...

    def update_names(self, user_id: str, first_name: Optional[str], last_name: Optional[str]) -> Optional[UserDto]:
        ...

    def mark_mobile_verified(self, user_id: str) -> Optional[UserDto]:
        ...
