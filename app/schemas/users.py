"""Schemas for registration and user administration."""

from pydantic import BaseModel, Field

from app.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
)
from app.schemas.auth import EMAIL_PATTERN, SessionUser


class RegisterRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    username: str = Field(
        ...,
        min_length=USERNAME_MIN_LEN,
        max_length=USERNAME_MAX_LEN,
        pattern=r"^[A-Za-z0-9_.-]+$",
    )
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    age: int | None = Field(default=None, ge=1, le=150)


class UserResponse(BaseModel):
    message: str
    user: SessionUser


class MeResponse(BaseModel):
    user: SessionUser
    role: str | None = None
    permissions: list[str]


class UsersListResponse(BaseModel):
    users: list[SessionUser]
