"""Role CRUD. Permission strings are validated at the schema layer."""

import logging

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError
from app.models import Role

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("display_name", "description", "permissions", "is_active", "hierarchy_level")


def list_active_roles(db: Session) -> list[Role]:
    return (
        db.query(Role)
        .filter(Role.is_active.is_(True))
        .order_by(Role.hierarchy_level.desc(), Role.id)
        .all()
    )


def create_role(
    db: Session,
    name: str,
    display_name: str,
    description: str = "",
    permissions: list[str] | None = None,
    hierarchy_level: int = 0,
) -> Role:
    if db.query(Role.id).filter(Role.name == name).first() is not None:
        raise ConflictError("Role already exists", code="ROLE_EXISTS")
    role = Role(
        name=name,
        display_name=display_name,
        description=description,
        permissions=list(permissions or []),
        hierarchy_level=hierarchy_level,
        is_active=True,
    )
    db.add(role)
    db.commit()
    db.refresh(role)
    logger.info("Role created: name=%s", role.name)
    return role


def update_role(db: Session, role_id: int, changes: dict) -> Role:
    """Apply a partial update; keys outside UPDATABLE_FIELDS are ignored."""
    role = db.get(Role, role_id)
    if role is None:
        raise NotFoundError("Role not found", code="ROLE_NOT_FOUND")
    for field in UPDATABLE_FIELDS:
        if field in changes and changes[field] is not None:
            value = changes[field]
            setattr(role, field, list(value) if field == "permissions" else value)
    db.commit()
    db.refresh(role)
    logger.info("Role updated: name=%s fields=%s", role.name, sorted(k for k in changes if k in UPDATABLE_FIELDS))
    return role
