# app/api/routes/health.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.dependencies.state import get_registry
from app.core.config import get_settings
from app.services.session_registry import SessionRegistry

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """
    Response schema for the health check endpoint.
    """

    status: str = Field(..., examples=["ok"])
    app_name: str = Field(..., examples=["Meeting Series Engine"])
    environment: str = Field(
        ...,
        description="Current deployment environment (local/dev/stage/prod).",
        examples=["local"],
    )
    open_sessions: int = Field(
        ...,
        description="Sessions currently held in memory by this process.",
        examples=[2],
    )
    timestamp_utc: datetime = Field(..., examples=["2025-01-01T10:30:00Z"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check for the Meeting Series service",
    description=(
        "Lightweight liveness endpoint for load balancers and uptime monitoring. It does "
        "not touch the database or the calendar API."
    ),
)
async def health_check(registry: SessionRegistry = Depends(get_registry)) -> HealthResponse:
    settings = get_settings()
    return HealthResponse(
        status="ok",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        open_sessions=len(registry),
        timestamp_utc=datetime.now(tz=timezone.utc),
    )
