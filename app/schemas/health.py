"""Schema for the health check response."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness plus the dependencies a login needs: the database and the maintenance flag."""

    status: Literal["ok", "degraded"] = "ok"
    environment: str
    database: Literal["connected", "disconnected"]
    maintenance_mode: bool | None = Field(
        default=None,
        description="None when the flag could not be read",
    )
    realtime_connections: int = Field(default=0, description="Open presence sockets in this process")
