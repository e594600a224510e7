"""Pydantic schemas for administrative endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mkcode.models.activity_log import AuditAction
from mkcode.schemas.auth import PASSWORD_MIN_LENGTH, ProfileResponse, check_password_bytes
from mkcode.services.admin import BulkAction


class UserIdRequest(BaseModel):
    user_id: int = Field(gt=0)


class AdminResetPasswordRequest(UserIdRequest):
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)

    @field_validator("password")
    @classmethod
    def password_fits(cls, value: str) -> str:
        return check_password_bytes(value)


class BulkActionRequest(BaseModel):
    action: BulkAction
    user_ids: list[int] = Field(min_length=1)


class AdminUserResponse(BaseModel):
    message: str
    user: ProfileResponse


class UserListResponse(BaseModel):
    users: list[ProfileResponse]
    total: int
    pages: int
    current_page: int


class BulkActionResponse(BaseModel):
    message: str
    affected: int


class ActivityLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    actor_id: int | None
    action: AuditAction
    target: str
    details: dict[str, Any]
    ip_address: str | None
    user_agent: str | None
    created_at: datetime


class ActivityLogListResponse(BaseModel):
    logs: list[ActivityLogResponse]
    total: int
    pages: int
    current_page: int
