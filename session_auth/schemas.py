"""Auth request/response schemas."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, EmailStr, Field

from session_auth.models import Role

MOBILE_PATTERN = r"^\+?[0-9]{7,15}$"


class ApiResponse(BaseModel):
    success: bool
    message: str
    data: dict[str, Any] | None = None


class RegisterRequest(BaseModel):
    email: EmailStr
    # bcrypt only looks at the first 72 bytes
    password: str = Field(min_length=8, max_length=72)
    mobile: str | None = Field(default=None, pattern=MOBILE_PATTERN)
    role: Literal["standard", "provider"] = Role.STANDARD.value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    device_info: str | None = Field(default=None, max_length=255)


class PasscodeLoginRequest(BaseModel):
    mobile: str = Field(pattern=MOBILE_PATTERN)
    otp: str = Field(min_length=4, max_length=8)
    device_info: str | None = Field(default=None, max_length=255)


class RoleUpdateRequest(BaseModel):
    role: Role


class PrincipalOut(BaseModel):
    id: str
    email: str | None = None
    mobile: str | None = None
    role: Role
    created_at: int | None = None
    last_login_at: int | None = None


class SessionOut(BaseModel):
    id: str
    device_info: str
    created_at: int
    last_used_at: int
    expires_at: int
