"""Authentication flows: login, logout, token rotation, registration, and password recovery.

Routes stay thin; every rejection here is raised as an ApiError subclass that the
exception handlers render as `{message, code, ...}`.
"""

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    AuthenticationError,
    BadRequestError,
    ConflictError,
    MaintenanceModeError,
    PermissionDeniedError,
    SessionError,
    SessionErrorCode,
)
from app.core.security import (
    access_token_expiry,
    create_access_token,
    generate_otp,
    generate_url_token,
    hash_password,
    utcnow,
    verify_access_token,
    verify_password,
)
from app.models import EmailVerificationToken, PasswordResetOtp, User
from app.models.user import USER_STATUS_ACTIVE, USER_STATUS_INACTIVE
from app.services import sessions as session_store
from app.services.email import EmailService, redact_email
from app.services.maintenance import DEFAULT_MAINTENANCE_MESSAGE, maintenance_status_or_none
from app.services.permissions import get_default_role, get_role_name

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


@dataclass(frozen=True)
class LoginResult:
    session_id: str
    access_token: str
    expires_at: datetime
    user: User


@dataclass(frozen=True)
class RegistrationData:
    first_name: str
    last_name: str
    username: str
    email: str
    password: str
    age: int | None = None


def find_user_by_identifier(db: Session, identifier: str) -> User | None:
    """Look up a non-deleted user by email or username (case-insensitive)."""
    ident = identifier.strip().lower()
    if not ident:
        return None
    return (
        db.query(User)
        .filter(
            or_(User.email == ident, User.username == ident),
            User.is_deleted.is_(False),
        )
        .first()
    )


def _find_user_by_email(db: Session, email: str) -> User | None:
    return (
        db.query(User)
        .filter(User.email == email.strip().lower(), User.is_deleted.is_(False))
        .first()
    )


def login(
    db: Session,
    identifier: str,
    password: str,
    device_info: dict | None = None,
) -> LoginResult:
    """
    Check credentials, apply the maintenance gate, create a session, and issue its token.

    Unknown identifier and wrong password are indistinguishable to the caller.
    """
    user = find_user_by_identifier(db, identifier)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Login failed: invalid credentials")
        raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE, code="INVALID_CREDENTIALS")

    if not user.is_verified:
        logger.info("Login refused: email not verified user_id=%s", user.id)
        raise PermissionDeniedError(
            "Email address is not verified",
            code="EMAIL_NOT_VERIFIED",
            extra={"needsVerification": True, "email": user.email},
        )

    # Fails open: if the flag cannot be read, the login is allowed through.
    status = maintenance_status_or_none(db)
    if status is not None and status.active and get_role_name(db, user) != settings.ADMIN_ROLE:
        raise MaintenanceModeError(status.message or DEFAULT_MAINTENANCE_MESSAGE)

    if user.role_id is None:
        default_role = get_default_role(db)
        if default_role is not None:
            user.role_id = default_role.id
            db.commit()
        else:
            logger.warning("Default role %s is missing; user_id=%s stays unassigned", settings.DEFAULT_ROLE, user.id)

    session_id = session_store.create_session(db, user.id, device_info)
    expires_at = access_token_expiry()
    access_token = create_access_token(user.id, session_id, expires_at)
    session_store.record_access_token(db, session_id, access_token, expires_at)

    user.is_logged_in = True
    user.status = USER_STATUS_ACTIVE
    db.commit()
    db.refresh(user)
    logger.info("Login succeeded: user_id=%s", user.id)
    return LoginResult(
        session_id=session_id,
        access_token=access_token,
        expires_at=expires_at,
        user=user,
    )


def logout(db: Session, user: User, session_id: str, access_token: str | None) -> None:
    """
    Invalidate the current session; mark the user logged out when no session remains.
    A supplied token must be bound to this session and user before anything is deleted.
    """
    if access_token is not None:
        claims = verify_access_token(access_token)
        if claims is None:
            raise SessionError(SessionErrorCode.TOKEN_INVALID)
        if claims.session_id != session_id:
            raise SessionError(SessionErrorCode.SESSION_MISMATCH)
        if claims.user_id != user.id:
            raise SessionError(SessionErrorCode.USER_MISMATCH)

    session_store.invalidate_session(db, session_id)
    if not session_store.get_user_active_sessions(db, user.id):
        user.is_logged_in = False
        user.status = USER_STATUS_INACTIVE
        db.commit()
    logger.info("Logout: user_id=%s", user.id)


def refresh_access_token(db: Session, user: User, session_id: str) -> tuple[str, datetime]:
    """Issue a fresh token for the session; the session horizon moves with it."""
    expires_at = access_token_expiry()
    token = create_access_token(user.id, session_id, expires_at)
    if not session_store.record_access_token(db, session_id, token, expires_at):
        raise SessionError(SessionErrorCode.SESSION_INVALID)
    return token, expires_at


def change_password(
    db: Session,
    user: User,
    current_session_id: str,
    old_password: str,
    new_password: str,
) -> int:
    """
    Change the password of an authenticated user. The new hash and the deletion of all
    other sessions commit in one transaction; the current session stays valid.
    Returns the number of sessions invalidated.
    """
    if not verify_password(old_password, user.password_hash):
        raise BadRequestError("Old password is incorrect", code="INVALID_PASSWORD")
    user.password_hash = hash_password(new_password)
    return session_store.invalidate_other_user_sessions(db, user.id, current_session_id)


def register_user(db: Session, data: RegistrationData, email_service: EmailService) -> User:
    """Create an unverified user with the default role and email a verification link."""
    email = data.email.strip().lower()
    username = data.username.strip().lower()
    existing = (
        db.query(User.id)
        .filter(or_(User.email == email, User.username == username))
        .first()
    )
    if existing is not None:
        raise ConflictError("User with this email or username already exists", code="USER_EXISTS")

    default_role = get_default_role(db)
    user = User(
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        username=username,
        email=email,
        password_hash=hash_password(data.password),
        age=data.age,
        role_id=default_role.id if default_role is not None else None,
        is_verified=False,
    )
    db.add(user)
    db.flush()
    token = _issue_verification_token(db, user)
    db.commit()
    db.refresh(user)

    if not email_service.send_verification_email(user.email, token, user.first_name):
        logger.warning("Verification email not delivered: to=%s", redact_email(user.email))
    return user


def _issue_verification_token(db: Session, user: User) -> str:
    db.query(EmailVerificationToken).filter(EmailVerificationToken.user_id == user.id).delete(
        synchronize_session=False
    )
    token = generate_url_token()
    db.add(
        EmailVerificationToken(
            user_id=user.id,
            token=token,
            expires_at=utcnow() + timedelta(hours=settings.EMAIL_TOKEN_EXPIRE_HOURS),
        )
    )
    return token


def verify_email(db: Session, token: str) -> User:
    """Mark the token's user verified and consume the token."""
    record = (
        db.query(EmailVerificationToken)
        .filter(
            EmailVerificationToken.token == token,
            EmailVerificationToken.expires_at > utcnow(),
        )
        .first()
    )
    if record is None:
        raise BadRequestError("Invalid or expired verification token", code="TOKEN_EXPIRED")
    user = db.get(User, record.user_id)
    if user is None or user.is_deleted:
        raise BadRequestError("Invalid or expired verification token", code="TOKEN_EXPIRED")
    user.is_verified = True
    db.query(EmailVerificationToken).filter(EmailVerificationToken.user_id == user.id).delete(
        synchronize_session=False
    )
    db.commit()
    db.refresh(user)
    return user


def resend_verification(db: Session, email: str, email_service: EmailService) -> None:
    """Send a fresh verification link to an unverified account; silent otherwise."""
    user = _find_user_by_email(db, email)
    if user is None or user.is_verified:
        return
    token = _issue_verification_token(db, user)
    db.commit()
    if not email_service.send_verification_email(user.email, token, user.first_name):
        logger.warning("Verification email not delivered: to=%s", redact_email(user.email))


def request_password_reset(
    db: Session,
    email: str,
    email_service: EmailService,
    *,
    replace_existing: bool = False,
) -> datetime | None:
    """
    Store and email a reset OTP. Returns its expiry, or None for an unknown address
    (callers answer the same way in both cases).
    """
    user = _find_user_by_email(db, email)
    if user is None:
        return None
    if replace_existing:
        db.query(PasswordResetOtp).filter(PasswordResetOtp.email == user.email).delete(
            synchronize_session=False
        )
    code = generate_otp()
    expires_at = utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)
    db.add(PasswordResetOtp(user_id=user.id, email=user.email, code=code, expires_at=expires_at))
    db.commit()
    if not email_service.send_password_reset_otp(
        user.email, code, user.first_name or "User", settings.OTP_EXPIRE_MINUTES
    ):
        logger.warning("Password reset email not delivered: to=%s", redact_email(user.email))
    return expires_at


def _latest_valid_otp(db: Session, email: str) -> PasswordResetOtp | None:
    return (
        db.query(PasswordResetOtp)
        .filter(
            PasswordResetOtp.email == email.strip().lower(),
            PasswordResetOtp.expires_at > utcnow(),
        )
        .order_by(PasswordResetOtp.expires_at.desc(), PasswordResetOtp.id.desc())
        .first()
    )


def verify_reset_otp(db: Session, email: str, otp: str) -> bool:
    """Check the newest unexpired OTP for the address without consuming it."""
    record = _latest_valid_otp(db, email)
    return record is not None and hmac.compare_digest(record.code, otp.strip())


def reset_password(db: Session, email: str, otp: str, new_password: str) -> User:
    """
    Set a new password from a valid OTP. The new hash, consumption of the OTPs, and
    deletion of every session of the user commit in one transaction.
    """
    user = _find_user_by_email(db, email)
    if user is None or not verify_reset_otp(db, email, otp):
        raise BadRequestError("Invalid OTP or OTP has expired", code="OTP_INVALID")

    user.password_hash = hash_password(new_password)
    user.is_logged_in = False
    user.status = USER_STATUS_INACTIVE
    db.query(PasswordResetOtp).filter(PasswordResetOtp.email == user.email).delete(
        synchronize_session=False
    )
    invalidated = session_store.invalidate_all_user_sessions(db, user.id)
    db.refresh(user)
    logger.info("Password reset: user_id=%s sessions_invalidated=%s", user.id, invalidated)
    return user
