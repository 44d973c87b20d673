# storefront/schemas/auth/auth.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
import re

PHONE_PATTERN = re.compile(r"^09\d{9}$")
MIN_PASSWORD_LENGTH = 6


def normalize_phone(value: str) -> str:
    """Strip separators and restore the leading 0 of a national mobile number."""
    phone_clean = re.sub(r"[\s\-()]", "", value or "")
    if re.match(r"^9\d{9}$", phone_clean):
        phone_clean = "0" + phone_clean
    if not PHONE_PATTERN.match(phone_clean):
        raise ValueError("Invalid phone number. Use the format 09XXXXXXXXX")
    return phone_clean


def _clean_name(value: str, label: str) -> str:
    value = (value or "").strip()
    if not 2 <= len(value) <= 50:
        raise ValueError(f"{label} must be between 2 and 50 characters")
    return value


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: str = Field(..., description="Mobile number, 09XXXXXXXXX")
    password: str = Field(..., description="At least 6 characters")
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v):
        return _clean_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v):
        return _clean_name(v, "Last name")


class LoginRequest(BaseModel):
    phone: str
    password: str = Field(..., min_length=1)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v)


class UpdateProfileRequest(BaseModel):
    # Unknown fields (phone, password, role, ...) are dropped, not rejected
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v):
        return None if v is None else _clean_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v):
        return None if v is None else _clean_name(v, "Last name")


class SendOTPRequest(BaseModel):
    phone: str

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v)


class VerifyOTPRequest(BaseModel):
    phone: str
    code: str = Field(..., description="6-digit code")

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v)

    @field_validator("code")
    @classmethod
    def validate_code(cls, v):
        v = v.strip()
        if not v.isdigit() or len(v) != 6:
            raise ValueError("Code must be exactly 6 digits")
        return v
