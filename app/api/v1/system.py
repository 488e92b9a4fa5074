"""Public system status."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.system import MaintenanceStatusResponse
from app.services.maintenance import get_maintenance_status

router = APIRouter()


@router.get("/maintenance", response_model=MaintenanceStatusResponse)
def get_maintenance(db: Annotated[Session, Depends(get_db)]) -> MaintenanceStatusResponse:
    """Whether maintenance mode is on; clients show the message on the login page."""
    status = get_maintenance_status(db)
    return MaintenanceStatusResponse(
        active=status.active,
        message=status.message,
        updated_at=status.updated_at,
    )
