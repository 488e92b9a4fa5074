"""ORM model for roles: a named set of permission strings."""

from sqlalchemy import JSON, Boolean, Column, Integer, String

from app.models.base import Base, TimestampMixin


class Role(TimestampMixin, Base):
    """
    Role record consulted by every permission check.

    name: one of admin / manager / user (unique).
    permissions: list of `resource:action[:scope]` strings from the known enumeration.
    hierarchy_level: 0-10; a role may only assign roles strictly below its own level.
    """

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(32), nullable=False, unique=True, index=True)
    display_name = Column(String(64), nullable=False)
    description = Column(String(255), nullable=False, default="")
    permissions = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    hierarchy_level = Column(Integer, nullable=False, default=0)
