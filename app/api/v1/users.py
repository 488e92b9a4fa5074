"""Registration, profile, and user administration routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.v1.deps import (
    AuthContext,
    CurrentAuth,
    require_contextual_permission,
    require_permission,
)
from app.core.database import get_db
from app.schemas.auth import SessionUser
from app.schemas.users import MeResponse, RegisterRequest, UserResponse, UsersListResponse
from app.services import users as user_service
from app.services.auth import RegistrationData, register_user
from app.services.email import EmailService, get_email_service
from app.services.permissions import get_role_name, get_user_permissions

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> UserResponse:
    """Create an unverified account and email a verification link."""
    user = register_user(
        db,
        RegistrationData(
            first_name=body.first_name,
            last_name=body.last_name,
            username=body.username,
            email=body.email,
            password=body.password,
            age=body.age,
        ),
        email_service,
    )
    return UserResponse(
        message="Registration successful. Please verify your email address.",
        user=SessionUser.model_validate(user),
    )


@router.get("/me", response_model=MeResponse)
def me(
    ctx: CurrentAuth,
    db: Annotated[Session, Depends(get_db)],
) -> MeResponse:
    return MeResponse(
        user=SessionUser.model_validate(ctx.user),
        role=get_role_name(db, ctx.user),
        permissions=get_user_permissions(db, ctx.user),
    )


@router.get("", response_model=UsersListResponse)
def list_users(
    _ctx: Annotated[AuthContext, Depends(require_permission("user:read:all"))],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    return UsersListResponse(
        users=[SessionUser.model_validate(u) for u in user_service.list_users(db)]
    )


@router.delete("/{user_id}", response_model=UserResponse)
def delete_user(
    user_id: int,
    _ctx: Annotated[AuthContext, Depends(require_contextual_permission("user:delete:all"))],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    """Soft delete; the user's sessions are terminated immediately."""
    user = user_service.soft_delete_user(db, user_id)
    return UserResponse(message="User deleted", user=SessionUser.model_validate(user))


@router.post("/{user_id}/restore", response_model=UserResponse)
def restore_user(
    user_id: int,
    _ctx: Annotated[AuthContext, Depends(require_contextual_permission("user:delete:all"))],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    user = user_service.restore_user(db, user_id)
    return UserResponse(message="User restored", user=SessionUser.model_validate(user))
