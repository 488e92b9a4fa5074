"""ORM model for global system settings (maintenance mode)."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String

from app.models.base import Base, TimestampMixin

GLOBAL_SETTINGS_KEY = "global"


class SystemSetting(TimestampMixin, Base):
    """Singleton row keyed by `global`, created on first read."""

    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(64), nullable=False, unique=True, index=True)
    maintenance_mode = Column(Boolean, nullable=False, default=False)
    maintenance_message = Column(String(500), nullable=False, default="")
    updated_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
