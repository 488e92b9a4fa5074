"""The caller's own sessions: list, check, and terminate."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.deps import CurrentAuth
from app.core.config import settings
from app.core.database import get_db
from app.core.errors import BadRequestError, NotFoundError
from app.models import UserSession
from app.schemas.sessions import (
    DeviceInfo,
    SessionCheckResponse,
    SessionCheckUser,
    SessionItem,
    SessionListResponse,
    SessionsTerminatedResponse,
)
from app.services import sessions as session_store

router = APIRouter()


def to_session_item(session: UserSession, current_session_id: str | None = None) -> SessionItem:
    return SessionItem(
        session_id=session.session_id,
        device_info=DeviceInfo(**(session.device_info or {})),
        last_activity=session.last_activity,
        created_at=session.created_at,
        expires_at=session.expires_at,
        is_current=session.session_id == current_session_id,
    )


@router.get("", response_model=SessionListResponse)
def list_my_sessions(
    ctx: CurrentAuth,
    db: Annotated[Session, Depends(get_db)],
) -> SessionListResponse:
    """Active sessions of the caller, most recently active first; the current one is flagged."""
    sessions = session_store.get_user_active_sessions(db, ctx.user.id)
    return SessionListResponse(
        sessions=[to_session_item(s, ctx.session_id) for s in sessions],
        max_sessions=settings.MAX_SESSIONS_PER_USER,
    )


@router.get("/check", response_model=SessionCheckResponse)
def check_session(ctx: CurrentAuth) -> SessionCheckResponse:
    return SessionCheckResponse(
        session_id=ctx.session_id,
        user=SessionCheckUser(id=ctx.user.id, email=ctx.user.email, username=ctx.user.username),
    )


@router.delete("/{session_id}", response_model=SessionsTerminatedResponse)
def terminate_session(
    session_id: str,
    ctx: CurrentAuth,
    db: Annotated[Session, Depends(get_db)],
) -> SessionsTerminatedResponse:
    """Terminate another session of the caller (e.g. a lost device)."""
    if session_id == ctx.session_id:
        raise BadRequestError(
            "Cannot terminate the current session; use logout instead",
            code="CURRENT_SESSION",
        )
    owned = {s.session_id for s in session_store.get_user_active_sessions(db, ctx.user.id)}
    if session_id not in owned:
        raise NotFoundError("Session not found", code="SESSION_NOT_FOUND")
    session_store.invalidate_session(db, session_id)
    return SessionsTerminatedResponse(message="Session terminated", deleted_count=1)
