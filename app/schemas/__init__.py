"""Pydantic request/response schemas."""

from app.schemas.auth import LoginRequest, LoginResponse, SessionUser
from app.schemas.health import HealthResponse
from app.schemas.roles import RoleCreate, RoleOut, RoleUpdate
from app.schemas.sessions import SessionItem, SessionListResponse
from app.schemas.system import MaintenanceStatusResponse

__all__ = [
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MaintenanceStatusResponse",
    "RoleCreate",
    "RoleOut",
    "RoleUpdate",
    "SessionItem",
    "SessionListResponse",
    "SessionUser",
]
