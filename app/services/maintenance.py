"""Maintenance mode: a global switch that blocks non-admin logins."""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from app.models import SystemSetting
from app.models.system_setting import GLOBAL_SETTINGS_KEY

logger = logging.getLogger(__name__)

DEFAULT_MAINTENANCE_MESSAGE = "The system is under maintenance. Please try again later."


@dataclass(frozen=True)
class MaintenanceStatus:
    active: bool
    message: str
    updated_at: datetime | None = None


def get_global_settings(db: Session) -> SystemSetting:
    """Return the singleton settings row, creating it on first read."""
    row = db.query(SystemSetting).filter(SystemSetting.key == GLOBAL_SETTINGS_KEY).first()
    if row is None:
        row = SystemSetting(key=GLOBAL_SETTINGS_KEY, maintenance_mode=False, maintenance_message="")
        db.add(row)
        db.commit()
        db.refresh(row)
    return row


def get_maintenance_status(db: Session) -> MaintenanceStatus:
    row = get_global_settings(db)
    return MaintenanceStatus(
        active=bool(row.maintenance_mode),
        message=row.maintenance_message or "",
        updated_at=row.updated_at,
    )


def maintenance_status_or_none(db: Session) -> MaintenanceStatus | None:
    """
    Maintenance status for the login gate. Fails open: a lookup error returns None
    and the caller lets the login proceed, unlike permission checks which fail closed.
    """
    try:
        return get_maintenance_status(db)
    except Exception:
        logger.warning("Maintenance status lookup failed; continuing without the gate", exc_info=True)
        db.rollback()
        return None


def set_maintenance_status(
    db: Session,
    active: bool,
    message: str | None,
    updated_by: int | None,
) -> MaintenanceStatus:
    row = get_global_settings(db)
    row.maintenance_mode = bool(active)
    if message is not None:
        row.maintenance_message = message
    if updated_by is not None:
        row.updated_by = updated_by
    db.commit()
    db.refresh(row)
    logger.info("Maintenance mode set: active=%s by user_id=%s", row.maintenance_mode, updated_by)
    return MaintenanceStatus(
        active=bool(row.maintenance_mode),
        message=row.maintenance_message or "",
        updated_at=row.updated_at,
    )
