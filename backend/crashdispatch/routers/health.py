"""Health and readiness endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crashdispatch.database import get_db
from crashdispatch.dependencies import get_vision_judge
from crashdispatch.models import Accident, EmergencyService, Notification
from crashdispatch.services.vision_client import OpenAIVisionJudge

router = APIRouter(tags=["health"])


class RecordCounts(BaseModel):
    """Stored record counts."""

    accidents: int
    emergency_services: int
    notifications: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    records: RecordCounts
    vision_configured: bool


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: Annotated[AsyncSession, Depends(get_db)],
    judge: Annotated[OpenAIVisionJudge, Depends(get_vision_judge)],
) -> HealthResponse:
    """
    Health check endpoint with record counts.

    ``vision_configured`` is false when evidence analysis will always use
    the fallback result.
    """
    accident_count = (await db.execute(select(func.count(Accident.id)))).scalar() or 0
    service_count = (await db.execute(select(func.count(EmergencyService.id)))).scalar() or 0
    notification_count = (
        await db.execute(select(func.count(Notification.id)))
    ).scalar() or 0

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        records=RecordCounts(
            accidents=accident_count,
            emergency_services=service_count,
            notifications=notification_count,
        ),
        vision_configured=judge.available(),
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """Simple readiness probe for container orchestration."""
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict:
    """Simple liveness probe for container orchestration."""
    return {"status": "alive"}
