"""Session store: create, validate, and invalidate server-side sessions.

A session is valid iff its row exists, is_active is true, and expires_at is in the
future. Invalidation deletes rows, so a revoked session can never be revived.

Concurrent logins for the same user are serialized by locking the user's row
(SELECT ... FOR UPDATE) for the duration of create_session, so the check-then-evict
sequence and the insert commit together. Backends without row locks (SQLite) fall
back to best effort, where a concurrent race may overshoot the cap by one.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Query, Session, joinedload

from app.core.config import settings
from app.core.security import access_token_expiry, create_access_token, generate_session_id, utcnow
from app.models import User, UserSession

logger = logging.getLogger(__name__)


def _active_sessions_query(db: Session, now: datetime) -> Query:
    return db.query(UserSession).filter(
        UserSession.is_active.is_(True),
        UserSession.expires_at > now,
    )


def _by_recency(query: Query) -> Query:
    # Most recently active first; ties go to the later insert.
    return query.order_by(UserSession.last_activity.desc(), UserSession.id.desc())


def create_session(
    db: Session,
    user_id: int,
    device_info: dict | None = None,
) -> str:
    """
    Create a session for `user_id` and return its session id.

    Evicts the least recently active sessions so that, with the new one, at most
    MAX_SESSIONS_PER_USER remain. The access token minted here is stored on the row;
    callers issue the token they return to the client separately.
    """
    cap = settings.MAX_SESSIONS_PER_USER
    now = utcnow()

    db.query(User.id).filter(User.id == user_id).with_for_update().first()

    active = _by_recency(
        _active_sessions_query(db, now).filter(UserSession.user_id == user_id)
    ).all()
    if len(active) >= cap:
        evicted_ids = [s.id for s in active[cap - 1 :]]
        db.query(UserSession).filter(UserSession.id.in_(evicted_ids)).delete(
            synchronize_session=False
        )
        logger.info("Session cap reached: user_id=%s evicted=%s", user_id, len(evicted_ids))

    db.query(UserSession).filter(
        UserSession.user_id == user_id,
        UserSession.is_active.is_(False),
    ).delete(synchronize_session=False)

    session_id = generate_session_id()
    expires_at = access_token_expiry(now)
    db.add(
        UserSession(
            session_id=session_id,
            user_id=user_id,
            access_token=create_access_token(user_id, session_id, expires_at),
            device_info=device_info or {},
            is_active=True,
            last_activity=now,
            expires_at=expires_at,
        )
    )
    db.commit()
    return session_id


def validate_session(db: Session, session_id: str | None) -> UserSession | None:
    """
    Return the live session for `session_id` with user and role loaded, or None.

    Not found, expired, inactive, and sessions of deleted users are all None.
    A hit refreshes last_activity.
    """
    if not session_id:
        return None
    now = utcnow()
    session = (
        _active_sessions_query(db, now)
        .options(joinedload(UserSession.user).joinedload(User.role))
        .filter(UserSession.session_id == session_id)
        .first()
    )
    if session is None:
        return None
    if session.user is None or session.user.is_deleted:
        return None
    session.last_activity = now
    db.commit()
    return session


def record_access_token(
    db: Session,
    session_id: str,
    token: str,
    expires_at: datetime | None = None,
) -> bool:
    """
    Store `token` as the session's most recently issued token.
    When `expires_at` is given the session horizon moves with it (token rotation).
    """
    values: dict = {UserSession.access_token: token}
    if expires_at is not None:
        values[UserSession.expires_at] = expires_at
    updated = (
        db.query(UserSession)
        .filter(UserSession.session_id == session_id)
        .update(values, synchronize_session=False)
    )
    db.commit()
    return updated > 0


def invalidate_session(db: Session, session_id: str, *, commit: bool = True) -> bool:
    """Delete the session. Idempotent: returns False when nothing was deleted."""
    deleted = (
        db.query(UserSession)
        .filter(UserSession.session_id == session_id)
        .delete(synchronize_session=False)
    )
    if commit:
        db.commit()
    return deleted > 0


def invalidate_all_user_sessions(db: Session, user_id: int, *, commit: bool = True) -> int:
    """Delete every session of the user (forces re-authentication everywhere)."""
    deleted = (
        db.query(UserSession)
        .filter(UserSession.user_id == user_id)
        .delete(synchronize_session=False)
    )
    if commit:
        db.commit()
    if deleted:
        logger.info("Invalidated all sessions: user_id=%s count=%s", user_id, deleted)
    return deleted


def invalidate_other_user_sessions(
    db: Session,
    user_id: int,
    keep_session_id: str,
    *,
    commit: bool = True,
) -> int:
    """Delete every session of the user except `keep_session_id`."""
    deleted = (
        db.query(UserSession)
        .filter(
            UserSession.user_id == user_id,
            UserSession.session_id != keep_session_id,
        )
        .delete(synchronize_session=False)
    )
    if commit:
        db.commit()
    if deleted:
        logger.info("Invalidated other sessions: user_id=%s count=%s", user_id, deleted)
    return deleted


def get_user_active_sessions(db: Session, user_id: int) -> list[UserSession]:
    """Active, unexpired sessions of the user, most recently active first."""
    return _by_recency(
        _active_sessions_query(db, utcnow()).filter(UserSession.user_id == user_id)
    ).all()


def get_all_active_sessions(db: Session) -> list[UserSession]:
    """Active, unexpired sessions of every user, most recently active first."""
    return _by_recency(
        _active_sessions_query(db, utcnow()).options(joinedload(UserSession.user))
    ).all()


def delete_all_sessions(db: Session) -> int:
    """Terminate every session in the system."""
    deleted = db.query(UserSession).delete(synchronize_session=False)
    db.commit()
    logger.info("Terminated all sessions: count=%s", deleted)
    return deleted


def cleanup_expired_sessions(db: Session) -> int:
    """Delete sessions that are expired or inactive. Safe to run alongside live traffic."""
    now = utcnow()
    deleted = (
        db.query(UserSession)
        .filter((UserSession.expires_at <= now) | (UserSession.is_active.is_(False)))
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
