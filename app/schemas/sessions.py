"""Schemas for the session management views."""

from datetime import datetime

from pydantic import BaseModel, Field


class DeviceInfo(BaseModel):
    user_agent: str | None = None
    ip: str | None = None
    browser: str | None = None
    os: str | None = None


class SessionItem(BaseModel):
    """One of the caller's sessions ("your devices" view)."""

    session_id: str
    device_info: DeviceInfo
    last_activity: datetime
    created_at: datetime | None = None
    expires_at: datetime
    is_current: bool = False


class SessionListResponse(BaseModel):
    sessions: list[SessionItem]
    max_sessions: int = Field(..., description="Maximum concurrent sessions per user")


class AdminSessionItem(SessionItem):
    user_id: int
    user_email: str | None = None
    online: bool = False


class AdminSessionListResponse(BaseModel):
    sessions: list[AdminSessionItem]
    max_sessions: int


class SessionCheckUser(BaseModel):
    id: int
    email: str
    username: str


class SessionCheckResponse(BaseModel):
    valid: bool = True
    session_id: str
    user: SessionCheckUser


class SessionsTerminatedResponse(BaseModel):
    message: str
    deleted_count: int
