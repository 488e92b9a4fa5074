"""ORM model for authenticated sessions (one row per device/browser login)."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin


class UserSession(TimestampMixin, Base):
    """
    Server-side session; the only source of truth for whether a login is still valid.

    session_id is a random identifier handed to clients (never the row id).
    access_token is the last token issued for this session, kept for auditing only.
    device_info: {user_agent, ip, browser, os}.
    """

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    access_token = Column(Text, nullable=True)
    device_info = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    last_activity = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    user = relationship("User", lazy="select")

    __table_args__ = (Index("ix_sessions_user_id_is_active", "user_id", "is_active"),)
