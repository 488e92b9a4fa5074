"""Periodic cleanup: expired sessions, purged users, and stale one-time credentials."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.core.security import utcnow
from app.models import EmailVerificationToken, PasswordResetOtp
from app.services.sessions import cleanup_expired_sessions
from app.services.users import purge_deleted_users

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanupResult:
    sessions_deleted: int = 0
    users_purged: int = 0
    otps_deleted: int = 0
    email_tokens_deleted: int = 0


def delete_expired_credentials(session: Session) -> tuple[int, int]:
    """Delete expired password-reset OTPs and verification tokens. Returns (otps, tokens)."""
    now = utcnow()
    otps = (
        session.query(PasswordResetOtp)
        .filter(PasswordResetOtp.expires_at <= now)
        .delete(synchronize_session=False)
    )
    tokens = (
        session.query(EmailVerificationToken)
        .filter(EmailVerificationToken.expires_at <= now)
        .delete(synchronize_session=False)
    )
    session.commit()
    return otps, tokens


def run_cleanup(session: Session, settings: "Settings") -> CleanupResult:
    """
    Run every cleanup step once. Idempotent: safe to run repeatedly and alongside traffic,
    since each delete is filtered by expiry or flags.
    """
    if not settings.CLEANUP_ENABLED:
        logger.info("Cleanup is disabled (CLEANUP_ENABLED=false); skipping.")
        return CleanupResult()

    sessions_deleted = cleanup_expired_sessions(session)
    users_purged = purge_deleted_users(session, settings.SOFT_DELETE_RETENTION_DAYS)
    otps_deleted, tokens_deleted = delete_expired_credentials(session)

    result = CleanupResult(
        sessions_deleted=sessions_deleted,
        users_purged=users_purged,
        otps_deleted=otps_deleted,
        email_tokens_deleted=tokens_deleted,
    )
    logger.info(
        "Cleanup run: sessions_deleted=%s users_purged=%s otps_deleted=%s email_tokens_deleted=%s",
        result.sessions_deleted,
        result.users_purged,
        result.otps_deleted,
        result.email_tokens_deleted,
    )
    return result
