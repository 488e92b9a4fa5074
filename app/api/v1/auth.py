"""Login, logout, token rotation, and password/email recovery routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.v1.deps import CurrentAuth
from app.core.config import settings
from app.core.database import get_db
from app.schemas.auth import (
    ChangePasswordRequest,
    ChangePasswordResponse,
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    OtpIssuedResponse,
    OtpVerifyRequest,
    OtpVerifyResponse,
    ResetPasswordRequest,
    SessionUser,
    TokenRefreshResponse,
)
from app.services import auth as auth_service
from app.services.email import EmailService, get_email_service
from app.utils.device import client_ip, parse_device_info

router = APIRouter()

GENERIC_VERIFICATION_MESSAGE = "If the account exists and is unverified, a verification email has been sent"


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> LoginResponse:
    """
    Authenticate with email or username and password.
    Send the returned session_id as X-Session-Id and the token as Authorization: Bearer <access_token>.
    """
    device_info = parse_device_info(request.headers.get("user-agent"), client_ip(request))
    result = auth_service.login(db, body.identifier, body.password, device_info)
    return LoginResponse(
        session_id=result.session_id,
        access_token=result.access_token,
        expires_at=result.expires_at,
        user=SessionUser.model_validate(result.user),
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    ctx: CurrentAuth,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Invalidate the current session. Other sessions of the user stay valid."""
    auth_service.logout(db, ctx.user, ctx.session_id, ctx.access_token)
    return MessageResponse(message="Logged out successfully")


@router.post("/refresh", response_model=TokenRefreshResponse)
def refresh(
    ctx: CurrentAuth,
    db: Annotated[Session, Depends(get_db)],
) -> TokenRefreshResponse:
    token, expires_at = auth_service.refresh_access_token(db, ctx.user, ctx.session_id)
    return TokenRefreshResponse(access_token=token, expires_at=expires_at)


@router.post("/change-password", response_model=ChangePasswordResponse)
def change_password(
    body: ChangePasswordRequest,
    ctx: CurrentAuth,
    db: Annotated[Session, Depends(get_db)],
) -> ChangePasswordResponse:
    """Change the password; every session except the current one is terminated."""
    invalidated = auth_service.change_password(
        db, ctx.user, ctx.session_id, body.old_password, body.new_password
    )
    return ChangePasswordResponse(sessions_invalidated=invalidated)


@router.post("/forgot-password", response_model=OtpIssuedResponse)
def forgot_password(
    body: EmailRequest,
    db: Annotated[Session, Depends(get_db)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> OtpIssuedResponse:
    """Email a one-time code. The response does not reveal whether the account exists."""
    auth_service.request_password_reset(db, body.email, email_service)
    return OtpIssuedResponse(expires_in_minutes=settings.OTP_EXPIRE_MINUTES)


@router.post("/resend-otp", response_model=OtpIssuedResponse)
def resend_otp(
    body: EmailRequest,
    db: Annotated[Session, Depends(get_db)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> OtpIssuedResponse:
    auth_service.request_password_reset(db, body.email, email_service, replace_existing=True)
    return OtpIssuedResponse(expires_in_minutes=settings.OTP_EXPIRE_MINUTES)


@router.post("/verify-otp", response_model=OtpVerifyResponse)
def verify_otp(
    body: OtpVerifyRequest,
    db: Annotated[Session, Depends(get_db)],
) -> OtpVerifyResponse:
    return OtpVerifyResponse(valid=auth_service.verify_reset_otp(db, body.email, body.otp))


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Set a new password from a valid code and log the user out everywhere."""
    auth_service.reset_password(db, body.email, body.otp, body.new_password)
    return MessageResponse(message="Password reset successfully. Please log in again.")


@router.get("/verify-email/{token}", response_model=MessageResponse)
def verify_email(
    token: str,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    auth_service.verify_email(db, token)
    return MessageResponse(message="Email verified successfully")


@router.post("/resend-verification", response_model=MessageResponse)
def resend_verification(
    body: EmailRequest,
    db: Annotated[Session, Depends(get_db)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> MessageResponse:
    auth_service.resend_verification(db, body.email, email_service)
    return MessageResponse(message=GENERIC_VERIFICATION_MESSAGE)
