"""Session gateway and authorization gate dependencies.

Order within a request is fixed: get_auth_context (authentication) runs before any
require_* gate (authorization), which runs before the route body. Both stages reject
with an ApiError rendered inline; nothing downstream sees a partially checked request.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import (
    ApiError,
    AuthenticationError,
    PermissionDeniedError,
    SessionError,
    SessionErrorCode,
)
from app.core.security import verify_access_token
from app.models import User, UserSession
from app.services import permissions
from app.services import sessions as session_store

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

SESSION_HEADER = "X-Session-Id"


@dataclass
class AuthContext:
    """What the gateway attaches to an authenticated request."""

    session_id: str
    session: UserSession
    user: User
    access_token: str | None = None


def authenticate(
    db: Session,
    session_id: str | None,
    access_token: str | None,
) -> AuthContext:
    """
    Resolve and cross-check session id, bearer token, and user.

    Raises SessionError with the first failing code; unexpected errors become
    SESSION_ERROR (500) so a request is never authenticated by accident.
    """
    if not session_id:
        raise SessionError(SessionErrorCode.NO_SESSION)

    claims = None
    if access_token is not None:
        claims = verify_access_token(access_token)
        if claims is None:
            raise SessionError(SessionErrorCode.TOKEN_INVALID)
        if claims.session_id != session_id:
            raise SessionError(SessionErrorCode.SESSION_MISMATCH)

    try:
        session = session_store.validate_session(db, session_id)
        if session is None:
            raise SessionError(SessionErrorCode.SESSION_INVALID)
        if claims is not None and claims.user_id != session.user_id:
            raise SessionError(SessionErrorCode.USER_MISMATCH)
        user = session.user
    except ApiError:
        raise
    except Exception:
        logger.exception("Session validation error")
        db.rollback()
        raise SessionError(SessionErrorCode.SESSION_ERROR)

    return AuthContext(
        session_id=session_id,
        session=session,
        user=user,
        access_token=access_token,
    )


def get_auth_context(
    db: Annotated[Session, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    x_session_id: Annotated[str | None, Header(alias=SESSION_HEADER)] = None,
) -> AuthContext:
    """Dependency: the session gateway every protected route passes through."""
    token = credentials.credentials if credentials is not None else None
    return authenticate(db, x_session_id, token)


CurrentAuth = Annotated[AuthContext, Depends(get_auth_context)]


def _require_user(ctx: AuthContext | None) -> User:
    if ctx is None or ctx.user is None:
        raise AuthenticationError()
    return ctx.user


def require_permission(permission: str) -> Callable[..., AuthContext]:
    """Dependency factory: 403 naming `permission` unless the user's role grants it."""

    def dependency(ctx: CurrentAuth, db: Annotated[Session, Depends(get_db)]) -> AuthContext:
        user = _require_user(ctx)
        # Fails closed: a role lookup error reads as "not granted".
        if not permissions.has_permission(db, user, permission):
            raise PermissionDeniedError(extra={"required": permission})
        return ctx

    return dependency


def require_any_permission(required: list[str]) -> Callable[..., AuthContext]:
    """Dependency factory: 403 listing `required` unless the role grants at least one."""
    required = list(required)

    def dependency(ctx: CurrentAuth, db: Annotated[Session, Depends(get_db)]) -> AuthContext:
        user = _require_user(ctx)
        if not permissions.has_any_permission(db, user, required):
            raise PermissionDeniedError(extra={"required": required})
        return ctx

    return dependency


def require_role(role_name: str) -> Callable[..., AuthContext]:
    """Dependency factory: compares the role's name directly instead of a permission."""

    def dependency(ctx: CurrentAuth, db: Annotated[Session, Depends(get_db)]) -> AuthContext:
        user = _require_user(ctx)
        if user.role_id is None:
            raise AuthenticationError()
        if permissions.get_role_name(db, user) != role_name:
            raise PermissionDeniedError(
                "Insufficient role permissions",
                code="INSUFFICIENT_ROLE",
                extra={"required": role_name},
            )
        return ctx

    return dependency


def require_minimum_role(level: int) -> Callable[..., AuthContext]:
    """Dependency factory: role hierarchy level must be at least `level`."""

    def dependency(ctx: CurrentAuth, db: Annotated[Session, Depends(get_db)]) -> AuthContext:
        user = _require_user(ctx)
        if not permissions.has_minimum_role_level(db, user, level):
            raise PermissionDeniedError(
                "Insufficient role hierarchy level",
                code="INSUFFICIENT_ROLE",
                extra={"required": f"Minimum level {level}"},
            )
        return ctx

    return dependency


def require_contextual_permission(permission: str) -> Callable[..., AuthContext]:
    """
    Dependency factory for routes under `/{user_id}`: the permission's scope is
    resolved against that user. An unknown id falls through to the route, which
    answers 404.
    """

    def dependency(
        user_id: int,
        ctx: CurrentAuth,
        db: Annotated[Session, Depends(get_db)],
    ) -> AuthContext:
        user = _require_user(ctx)
        target = db.get(User, user_id)
        if not permissions.resolve_permission(db, user, permission, target):
            raise PermissionDeniedError(
                "Insufficient contextual permissions",
                extra={
                    "required": permission,
                    "context": f"for user {user_id}",
                },
            )
        return ctx

    return dependency
