"""Schemas for system settings (maintenance mode)."""

from datetime import datetime

from pydantic import BaseModel, Field


class MaintenanceStatusResponse(BaseModel):
    active: bool
    message: str
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class MaintenanceUpdateRequest(BaseModel):
    active: bool
    message: str | None = Field(default=None, max_length=500)
