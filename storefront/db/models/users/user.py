# storefront/db/models/users/user.py
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....core.clock import utcnow
from ....core.roles import Role

class User(SQLModel, table=True):
    __tablename__ = "users"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    phone: str = Field(max_length=20, unique=True, index=True)
    password_hash: str = Field(max_length=255)
    first_name: str = Field(max_length=50)
    last_name: str = Field(max_length=50)
    role: Role = Field(default=Role.CUSTOMER)
    mobile_verified: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
