"""Admin-only routes: every session in the system and the maintenance switch."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.deps import AuthContext, require_role
from app.api.v1.sessions import to_session_item
from app.core.config import settings
from app.core.database import get_db
from app.schemas.sessions import (
    AdminSessionItem,
    AdminSessionListResponse,
    SessionsTerminatedResponse,
)
from app.schemas.system import MaintenanceStatusResponse, MaintenanceUpdateRequest
from app.services import sessions as session_store
from app.services.maintenance import set_maintenance_status
from app.services.presence import presence
from app.services.users import get_user_or_404

router = APIRouter()

AdminAuth = Annotated[AuthContext, Depends(require_role(settings.ADMIN_ROLE))]


@router.get("/sessions", response_model=AdminSessionListResponse)
def list_all_sessions(
    ctx: AdminAuth,
    db: Annotated[Session, Depends(get_db)],
) -> AdminSessionListResponse:
    items = []
    for s in session_store.get_all_active_sessions(db):
        base = to_session_item(s, ctx.session_id)
        items.append(
            AdminSessionItem(
                **base.model_dump(),
                user_id=s.user_id,
                user_email=s.user.email if s.user is not None else None,
                online=presence.is_online(s.user_id),
            )
        )
    return AdminSessionListResponse(sessions=items, max_sessions=settings.MAX_SESSIONS_PER_USER)


@router.delete("/sessions", response_model=SessionsTerminatedResponse)
def terminate_all_sessions(
    _admin: AdminAuth,
    db: Annotated[Session, Depends(get_db)],
) -> SessionsTerminatedResponse:
    """Terminate every session, including the caller's."""
    deleted = session_store.delete_all_sessions(db)
    return SessionsTerminatedResponse(message="All sessions terminated", deleted_count=deleted)


@router.delete("/users/{user_id}/sessions", response_model=SessionsTerminatedResponse)
def terminate_user_sessions(
    user_id: int,
    _admin: AdminAuth,
    db: Annotated[Session, Depends(get_db)],
) -> SessionsTerminatedResponse:
    user = get_user_or_404(db, user_id)
    deleted = session_store.invalidate_all_user_sessions(db, user.id)
    return SessionsTerminatedResponse(message="User sessions terminated", deleted_count=deleted)


@router.post("/system/maintenance", response_model=MaintenanceStatusResponse)
def update_maintenance(
    body: MaintenanceUpdateRequest,
    ctx: AdminAuth,
    db: Annotated[Session, Depends(get_db)],
) -> MaintenanceStatusResponse:
    status = set_maintenance_status(db, body.active, body.message, ctx.user.id)
    return MaintenanceStatusResponse(
        active=status.active,
        message=status.message,
        updated_at=status.updated_at,
    )
