"""Pydantic schemas for authentication and profile endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from mkcode.services.passwords import BCRYPT_MAX_BYTES

PASSWORD_MIN_LENGTH = 6
RESET_CODE_PATTERN = r"^[0-9]{6}$"


def check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return value


class EmailRequest(BaseModel):
    """Base for bodies keyed by email; the address is trimmed and lowercased."""

    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class RegisterRequest(EmailRequest):
    name: str = Field(min_length=2, max_length=50)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be 2-50 characters")
        return value

    @field_validator("password")
    @classmethod
    def password_fits(cls, value: str) -> str:
        return check_password_bytes(value)


class LoginRequest(EmailRequest):
    password: str = Field(min_length=1)


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(min_length=1)
    new_password: str = Field(min_length=PASSWORD_MIN_LENGTH)

    @field_validator("new_password")
    @classmethod
    def password_fits(cls, value: str) -> str:
        return check_password_bytes(value)


class ProfileUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=2, max_length=50)
    email: EmailStr | None = None
    bio: str | None = Field(default=None, max_length=500)
    phone: str | None = Field(default=None, max_length=32)
    location: str | None = Field(default=None, max_length=128)
    website: str | None = Field(default=None, max_length=256)


class RequestResetRequest(EmailRequest):
    pass


class VerifyResetCodeRequest(EmailRequest):
    code: str = Field(pattern=RESET_CODE_PATTERN)


class ResetPasswordRequest(EmailRequest):
    code: str = Field(pattern=RESET_CODE_PATTERN)
    new_password: str = Field(min_length=PASSWORD_MIN_LENGTH)

    @field_validator("new_password")
    @classmethod
    def password_fits(cls, value: str) -> str:
        return check_password_bytes(value)


class VerifyEmailRequest(BaseModel):
    token: str = Field(min_length=1, max_length=256)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: str
    is_verified: bool
    last_login_at: datetime | None = None


class ProfileResponse(UserResponse):
    is_active: bool
    login_count: int
    bio: str
    phone: str
    location: str
    website: str
    created_at: datetime


class TokenResponse(BaseModel):
    message: str
    token: str
    user: UserResponse


class MessageResponse(BaseModel):
    message: str
