"""Health check endpoint with identity store connectivity check."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> HealthResponse:
    """
    Return service health and database connectivity.
    A disconnected database reports status "degraded" rather than failing.
    """
    connected = check_db_connected(db)
    return HealthResponse(
        status="ok" if connected else "degraded",
        version=request.app.version,
        environment=request.app.state.settings.APP_ENV,
        database="connected" if connected else "disconnected",
    )
