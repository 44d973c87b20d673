# storefront/db/models/auth/otp.py
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

class OTPChallenge(SQLModel, table=True):
    __tablename__ = "otp_challenges"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    phone: str = Field(max_length=20, index=True)
    code: str = Field(max_length=6)
    attempts: int = Field(default=0)
    is_consumed: bool = Field(default=False)
    issued_at: datetime
    expires_at: datetime
