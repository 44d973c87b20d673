from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ...application.ports.user_repo import UserDto


class UserResponse(BaseModel):
    """Public view of a user. Never carries the password hash."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    phone: str
    first_name: str = Field(..., serialization_alias="firstName")
    last_name: str = Field(..., serialization_alias="lastName")
    role: str
    mobile_verified: bool = Field(..., serialization_alias="mobileVerified")
    created_at: datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime = Field(..., serialization_alias="updatedAt")

    @classmethod
    def from_dto(cls, user: UserDto) -> "UserResponse":
        return cls(
            id=user.id,
            phone=user.phone,
            first_name=user.first_name,
            last_name=user.last_name,
            role=getattr(user.role, "value", user.role),
            mobile_verified=user.mobile_verified,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
