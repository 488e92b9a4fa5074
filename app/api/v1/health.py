"""Unauthenticated health check for load balancers and uptime probes."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse
from app.services.maintenance import maintenance_status_or_none
from app.services.presence import presence

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(db: Annotated[Session, Depends(get_db)]) -> HealthResponse:
    connected = check_db_connected(db)
    maintenance = maintenance_status_or_none(db) if connected else None
    return HealthResponse(
        status="ok" if connected else "degraded",
        environment=settings.APP_ENV,
        database="connected" if connected else "disconnected",
        maintenance_mode=maintenance.active if maintenance is not None else None,
        realtime_connections=presence.connection_count(),
    )
