"""Permission model and role resolver.

Permissions are `resource:action[:scope]` strings from a closed enumeration; a role
grants a subset of them. The role is re-read from the database on every check, so
role changes take effect on the next request without forcing a logout.

Every check here fails closed: a missing role reference, a missing or inactive role,
or any lookup error answers "deny" and never raises to the caller.
"""

import logging
from typing import Literal, get_args

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models import Role, User

logger = logging.getLogger(__name__)

RoleName = Literal["admin", "manager", "user"]
ROLE_NAMES: tuple[str, ...] = get_args(RoleName)

TASK_PERMISSIONS = (
    "task:create:own",
    "task:create:others",
    "task:read:own",
    "task:read:team",
    "task:read:all",
    "task:update:own",
    "task:update:team",
    "task:update:all",
    "task:delete:own",
    "task:delete:team",
    "task:delete:all",
    "task:assign",
)
USER_PERMISSIONS = (
    "user:create",
    "user:read:own",
    "user:read:all",
    "user:update:own",
    "user:update:all",
    "user:delete:own",
    "user:delete:all",
)
ROLE_PERMISSIONS = ("role:assign", "role:manage")
SYSTEM_PERMISSIONS = ("system:admin",)
PROJECT_PERMISSIONS = (
    "project:create",
    "project:read:own",
    "project:read:team",
    "project:read:all",
    "project:update:own",
    "project:update:team",
    "project:update:all",
    "project:delete:own",
    "project:delete:team",
    "project:delete:all",
    "project:manage",
)
TEAM_PERMISSIONS = (
    "team:create",
    "team:read:own",
    "team:read:all",
    "team:update:own",
    "team:update:all",
    "team:delete:own",
    "team:delete:all",
    "team:manage",
    "team:lead",
)

ALL_PERMISSIONS: tuple[str, ...] = (
    TASK_PERMISSIONS
    + USER_PERMISSIONS
    + ROLE_PERMISSIONS
    + SYSTEM_PERMISSIONS
    + PROJECT_PERMISSIONS
    + TEAM_PERMISSIONS
)
KNOWN_PERMISSIONS: frozenset[str] = frozenset(ALL_PERMISSIONS)

# Seed data for the three built-in roles.
DEFAULT_ROLES: dict[str, dict] = {
    "admin": {
        "display_name": "Administrator",
        "description": "Full access to every resource and system setting.",
        "hierarchy_level": 10,
        "permissions": list(ALL_PERMISSIONS),
    },
    "manager": {
        "display_name": "Manager",
        "description": "Manages tasks and projects for their team.",
        "hierarchy_level": 5,
        "permissions": [
            "task:create:own",
            "task:create:others",
            "task:read:own",
            "task:read:team",
            "task:update:own",
            "task:update:team",
            "task:delete:own",
            "task:delete:team",
            "task:assign",
            "user:read:own",
            "user:read:all",
            "user:update:own",
            "project:create",
            "project:read:own",
            "project:read:team",
            "project:update:own",
            "project:update:team",
            "project:delete:own",
            "project:manage",
            "team:read:own",
            "team:update:own",
            "team:lead",
            "role:assign",
        ],
    },
    "user": {
        "display_name": "User",
        "description": "Works on their own tasks and projects.",
        "hierarchy_level": 1,
        "permissions": [
            "task:create:own",
            "task:read:own",
            "task:update:own",
            "task:delete:own",
            "user:read:own",
            "user:update:own",
            "user:delete:own",
            "project:create",
            "project:read:own",
            "project:update:own",
            "project:delete:own",
            "team:read:own",
        ],
    },
}


def unknown_permissions(permissions: list[str]) -> list[str]:
    """Entries that are not part of the permission enumeration (order preserved)."""
    return [p for p in permissions if p not in KNOWN_PERMISSIONS]


def _load_role(db: Session, user: User | None) -> Role | None:
    """Fresh read of the user's role; None when unassigned, missing, or inactive."""
    if user is None or user.role_id is None:
        return None
    role = (
        db.query(Role)
        .filter(Role.id == user.role_id)
        .populate_existing()
        .first()
    )
    if role is None or not role.is_active:
        return None
    return role


def has_permission(db: Session, user: User | None, permission: str) -> bool:
    """True iff the user's active role grants `permission`."""
    try:
        role = _load_role(db, user)
        if role is None:
            return False
        return permission in (role.permissions or [])
    except Exception:
        logger.exception("Permission check error for permission=%s", permission)
        return False


def has_any_permission(db: Session, user: User | None, permissions: list[str]) -> bool:
    """True iff the user's active role grants at least one of `permissions`."""
    try:
        role = _load_role(db, user)
        if role is None:
            return False
        granted = set(role.permissions or [])
        return any(p in granted for p in permissions)
    except Exception:
        logger.exception("Permission check error for permissions=%s", permissions)
        return False


def get_user_permissions(db: Session, user: User | None) -> list[str]:
    """Effective permissions of the user's role; [] when none apply."""
    try:
        role = _load_role(db, user)
        return list(role.permissions or []) if role is not None else []
    except Exception:
        logger.exception("Get user permissions error")
        return []


def get_role_name(db: Session, user: User | None) -> str | None:
    """Name of the user's active role, read fresh."""
    try:
        role = _load_role(db, user)
        return role.name if role is not None else None
    except Exception:
        logger.exception("Role lookup error")
        return None


def has_minimum_role_level(db: Session, user: User | None, level: int) -> bool:
    try:
        role = _load_role(db, user)
        return role is not None and role.hierarchy_level >= level
    except Exception:
        logger.exception("Role hierarchy check error")
        return False


def can_manage_role(db: Session, user: User | None, target_role_name: str) -> bool:
    """
    A user may assign a role only with role:assign or role:manage, and only when their
    own hierarchy level is strictly higher than the target role's.
    """
    try:
        role = _load_role(db, user)
        if role is None:
            return False
        granted = set(role.permissions or [])
        if "role:assign" not in granted and "role:manage" not in granted:
            return False
        target = db.query(Role).filter(Role.name == target_role_name).first()
        if target is None:
            return False
        return role.hierarchy_level > target.hierarchy_level
    except Exception:
        logger.exception("Role management check error for role=%s", target_role_name)
        return False


def has_hierarchical_permission(
    db: Session, user: User | None, target_user: User, permission: str
) -> bool:
    """
    `permission` exercised on another user: the actor's hierarchy level must be at
    least the target's. Acting on oneself, or on a user without a role, only needs
    the permission itself.
    """
    try:
        role = _load_role(db, user)
        if role is None or permission not in (role.permissions or []):
            return False
        if target_user.id == user.id:
            return True
        target_role = _load_role(db, target_user)
        if target_role is None:
            return True
        return role.hierarchy_level >= target_role.hierarchy_level
    except Exception:
        logger.exception("Hierarchical permission check error for permission=%s", permission)
        return False


def resolve_permission(
    db: Session, user: User | None, permission: str, target_user: User | None = None
) -> bool:
    """
    Apply the permission's scope to `target_user`.

    `:own` matches only the actor, `:team` as well since team membership is not
    tracked, and `:all` goes through the hierarchy check. Unscoped permissions and
    calls without a target reduce to has_permission.
    """
    if not has_permission(db, user, permission):
        return False
    if target_user is None:
        return True
    parts = permission.split(":")
    scope = parts[2] if len(parts) > 2 else None
    if scope in ("own", "team"):
        return target_user.id == user.id
    if scope == "all":
        return has_hierarchical_permission(db, user, target_user, permission)
    return True


def seed_default_roles(db: Session) -> list[Role]:
    """Create any missing built-in roles. Idempotent; existing roles are left untouched."""
    existing = {r.name: r for r in db.query(Role).filter(Role.name.in_(list(DEFAULT_ROLES))).all()}
    created: list[Role] = []
    for name, defaults in DEFAULT_ROLES.items():
        if name in existing:
            continue
        role = Role(
            name=name,
            display_name=defaults["display_name"],
            description=defaults["description"],
            permissions=list(defaults["permissions"]),
            hierarchy_level=defaults["hierarchy_level"],
            is_active=True,
        )
        db.add(role)
        created.append(role)
    if created:
        db.commit()
        logger.info("Seeded default roles: %s", ", ".join(r.name for r in created))
    return created


def get_default_role(db: Session) -> Role | None:
    """The role given to users without one, seeding the built-in roles on first use."""
    name = settings.DEFAULT_ROLE
    role = db.query(Role).filter(Role.name == name).first()
    if role is None:
        seed_default_roles(db)
        role = db.query(Role).filter(Role.name == name).first()
    return role
