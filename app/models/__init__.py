"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.otp import EmailVerificationToken, PasswordResetOtp
from app.models.role import Role
from app.models.session import UserSession
from app.models.system_setting import SystemSetting
from app.models.user import User

__all__ = [
    "Base",
    "EmailVerificationToken",
    "PasswordResetOtp",
    "Role",
    "SystemSetting",
    "User",
    "UserSession",
]
