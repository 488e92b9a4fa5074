"""User lifecycle beyond authentication: listing, soft delete/restore, purge, role assignment."""

import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, PermissionDeniedError
from app.core.security import utcnow
from app.models import Role, User
from app.models.user import USER_STATUS_ACTIVE, USER_STATUS_INACTIVE
from app.services import sessions as session_store
from app.services.permissions import can_manage_role, has_hierarchical_permission

logger = logging.getLogger(__name__)


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")
    return user


def list_users(db: Session) -> list[User]:
    return db.query(User).filter(User.is_deleted.is_(False)).order_by(User.id).all()


def soft_delete_user(db: Session, user_id: int) -> User:
    """Flag the user deleted and log them out everywhere; the cleanup job purges them later."""
    user = get_user_or_404(db, user_id)
    user.is_deleted = True
    user.deleted_at = utcnow()
    user.is_logged_in = False
    user.status = USER_STATUS_INACTIVE
    session_store.invalidate_all_user_sessions(db, user.id)
    db.refresh(user)
    logger.info("User soft deleted: user_id=%s", user.id)
    return user


def restore_user(db: Session, user_id: int) -> User:
    user = get_user_or_404(db, user_id)
    user.is_deleted = False
    user.deleted_at = None
    user.status = USER_STATUS_ACTIVE
    db.commit()
    db.refresh(user)
    logger.info("User restored: user_id=%s", user.id)
    return user


def purge_deleted_users(db: Session, retention_days: int) -> int:
    """Hard-delete users soft-deleted more than `retention_days` ago."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = (
        db.query(User)
        .filter(User.is_deleted.is_(True), User.deleted_at <= cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted


def assign_role(db: Session, actor: User, user_id: int, role_id: int) -> User:
    """
    Assign `role_id` to a user. The actor must rank at least as high as the user's
    current role and strictly higher than the role being assigned.
    """
    user = get_user_or_404(db, user_id)
    role = db.get(Role, role_id)
    if role is None:
        raise NotFoundError("Role not found", code="ROLE_NOT_FOUND")
    if not (
        has_hierarchical_permission(db, actor, user, "role:assign")
        or has_hierarchical_permission(db, actor, user, "role:manage")
    ):
        raise PermissionDeniedError(
            "Insufficient permissions to change this user's role",
            extra={"required": "role:assign"},
        )
    if not can_manage_role(db, actor, role.name):
        raise PermissionDeniedError(
            "Insufficient permissions to assign this role",
            extra={"required": role.name},
        )
    user.role_id = role.id
    db.commit()
    db.refresh(user)
    logger.info("Role assigned: user_id=%s role=%s by user_id=%s", user.id, role.name, actor.id)
    return user
