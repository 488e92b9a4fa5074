"""ORM model for application users (auth and RBAC)."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin

USER_STATUS_ACTIVE = "active"
USER_STATUS_INACTIVE = "inactive"


class User(TimestampMixin, Base):
    """
    User account for session authentication and role-based access control.

    is_logged_in / status are owned by login and logout; is_deleted / deleted_at
    mark a soft delete that the cleanup job turns into a hard delete.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    age = Column(Integer, nullable=True)
    role_id = Column(
        Integer,
        ForeignKey("roles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_verified = Column(Boolean, nullable=False, default=False)
    is_logged_in = Column(Boolean, nullable=False, default=False)
    status = Column(String(16), nullable=False, default=USER_STATUS_INACTIVE)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    role = relationship("Role", lazy="joined")
