from dataclasses import dataclass
from typing import Optional

from ...core.exceptions import NotFoundError, ValidationError
from ..ports.user_repo import UserRepository, UserDto


@dataclass
class ProfileService:
    user_repo: UserRepository

    def get_profile(self, user_id: str) -> UserDto:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, user_id: str, first_name: Optional[str], last_name: Optional[str]) -> UserDto:
        # Only names are editable here; phone, password and role are not
        first_name = first_name.strip() if first_name is not None else None
        last_name = last_name.strip() if last_name is not None else None
        if first_name == "":
            raise ValidationError.for_field("firstName", "First name cannot be empty")
        if last_name == "":
            raise ValidationError.for_field("lastName", "Last name cannot be empty")
        user = self.user_repo.update_names(user_id, first_name, last_name)
        if not user:
            raise NotFoundError("User not found")
        return user
