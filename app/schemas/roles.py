"""Schemas for role management."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.services.permissions import ROLE_NAMES, unknown_permissions


def _check_permissions(v: list[str] | None) -> list[str] | None:
    if v is None:
        return v
    unknown = unknown_permissions(v)
    if unknown:
        raise ValueError(f"Unknown permissions: {', '.join(unknown)}")
    # Deduplicate, keep order.
    return list(dict.fromkeys(v))


class RoleCreate(BaseModel):
    name: str = Field(..., description=f"One of: {', '.join(ROLE_NAMES)}")
    display_name: str = Field(..., min_length=1, max_length=64)
    description: str = Field(default="", max_length=255)
    permissions: list[str] = Field(default_factory=list)
    hierarchy_level: int = Field(default=0, ge=0, le=10)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        name = v.strip().lower()
        if name not in ROLE_NAMES:
            raise ValueError(f"Role name must be one of: {', '.join(ROLE_NAMES)}")
        return name

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v: list[str]) -> list[str]:
        return _check_permissions(v)


class RoleUpdate(BaseModel):
    """Partial update; the role name is immutable."""

    display_name: str | None = Field(default=None, min_length=1, max_length=64)
    description: str | None = Field(default=None, max_length=255)
    permissions: list[str] | None = None
    is_active: bool | None = None
    hierarchy_level: int | None = Field(default=None, ge=0, le=10)

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v: list[str] | None) -> list[str] | None:
        return _check_permissions(v)


class RoleOut(BaseModel):
    id: int
    name: str
    display_name: str
    description: str
    permissions: list[str]
    is_active: bool
    hierarchy_level: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class RoleResponse(BaseModel):
    message: str
    role: RoleOut


class RoleAssignRequest(BaseModel):
    user_id: int
    role_id: int
