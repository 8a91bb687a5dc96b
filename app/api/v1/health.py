"""Health check endpoint with user-store connectivity check."""

from fastapi import APIRouter

from app.api.v1.dependencies import AppSettings, DbSession
from app.core.database import check_db_connected
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(db: DbSession, settings: AppSettings) -> HealthResponse:
    """
    Return service health and whether the user store answers.
    Used by load balancers and monitoring; never requires a session.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=db_status,
        local_auth=settings.LOCAL_AUTH_ENABLED,
    )
