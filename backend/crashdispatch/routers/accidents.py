"""API routes for accident reports."""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from crashdispatch.config import get_settings
from crashdispatch.database import get_db
from crashdispatch.dependencies import get_intake_pipeline
from crashdispatch.limiter import limiter
from crashdispatch.models.enums import AccidentSeverity, AccidentStatus
from crashdispatch.schemas.accident import (
    AccidentCreate,
    AccidentIntakeResponse,
    AccidentOut,
    AccidentStatistics,
    AccidentStatusUpdate,
    AccidentSummary,
    AccidentUpdate,
    OfficerAssignment,
)
from crashdispatch.services.accidents import AccidentService
from crashdispatch.services.evidence_store import EvidenceFile
from crashdispatch.services.intake import IntakePipeline

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/accidents", tags=["accidents"])


@router.post("", response_model=AccidentOut, status_code=status.HTTP_201_CREATED)
async def report_accident(
    data: AccidentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccidentOut:
    """
    Report an accident without analysis or dispatch.

    A missing severity is derived from the reported counts and conditions.
    """
    accident = await AccidentService(db).create(data)
    return AccidentOut.model_validate(accident)


@router.post(
    "/report",
    response_model=AccidentIntakeResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def report_accident_with_analysis(
    request: Request,
    pipeline: Annotated[IntakePipeline, Depends(get_intake_pipeline)],
    description: str = Form(...),
    latitude: float = Form(...),
    longitude: float = Form(...),
    location_address: str = Form(...),
    occurred_at: datetime | None = Form(None),
    weather_conditions: str | None = Form(None),
    road_conditions: str | None = Form(None),
    number_of_vehicles: int = Form(0),
    number_of_injuries: int = Form(0),
    number_of_fatalities: int = Form(0),
    reported_by_id: str | None = Form(None),
    requester_id: str | None = Form(None),
    images: list[UploadFile] | None = File(None),
) -> AccidentIntakeResponse:
    """
    Report an accident with evidence images.

    Evidence is validated and stored, the accident is scored once, saved at
    the resulting severity, and emergency services are dispatched from the
    raw score. Any rejected image aborts the whole submission.
    """
    try:
        facts = AccidentCreate(
            description=description,
            latitude=latitude,
            longitude=longitude,
            location_address=location_address,
            occurred_at=occurred_at,
            weather_conditions=weather_conditions,
            road_conditions=road_conditions,
            number_of_vehicles=number_of_vehicles,
            number_of_injuries=number_of_injuries,
            number_of_fatalities=number_of_fatalities,
            reported_by_id=reported_by_id,
        )
    except ValidationError as e:
        logger.warning(f"Rejected accident report: {e.error_count()} invalid field(s)")
        raise RequestValidationError(e.errors(include_url=False)) from e

    evidence_files = [
        EvidenceFile(
            filename=image.filename or "upload",
            content_type=image.content_type or "application/octet-stream",
            data=await image.read(),
        )
        for image in images or []
    ]

    result = await pipeline.submit_with_analysis(facts, evidence_files, requester_id)
    return AccidentIntakeResponse.model_validate(result)


@router.get("", response_model=list[AccidentOut])
async def list_accidents(
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: AccidentStatus | None = Query(None, alias="status"),
    severity: AccidentSeverity | None = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> list[AccidentOut]:
    """List accidents, newest first."""
    accidents = await AccidentService(db).list_accidents(
        status=status_filter, severity=severity, limit=limit, offset=offset
    )
    return [AccidentOut.model_validate(a) for a in accidents]


@router.get("/statistics", response_model=AccidentStatistics)
async def accident_statistics(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccidentStatistics:
    return AccidentStatistics.model_validate(await AccidentService(db).statistics())


@router.get("/nearby", response_model=list[AccidentOut])
async def nearby_accidents(
    db: Annotated[AsyncSession, Depends(get_db)],
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(5.0, gt=0, le=500),
) -> list[AccidentOut]:
    """Open accidents within a radius of a point."""
    accidents = await AccidentService(db).nearby(latitude, longitude, radius_km)
    return [AccidentOut.model_validate(a) for a in accidents]


@router.get("/report-number/{report_number}", response_model=AccidentOut)
async def get_accident_by_report_number(
    report_number: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccidentOut:
    accident = await AccidentService(db).get_by_report_number(report_number)
    return AccidentOut.model_validate(accident)


@router.get("/officer/{officer_id}", response_model=list[AccidentOut])
async def list_accidents_by_officer(
    officer_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[AccidentOut]:
    accidents = await AccidentService(db).list_by_officer(officer_id)
    return [AccidentOut.model_validate(a) for a in accidents]


@router.get("/{accident_id}", response_model=AccidentOut)
async def get_accident(
    accident_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccidentOut:
    return AccidentOut.model_validate(await AccidentService(db).get(accident_id))


@router.get("/{accident_id}/summary", response_model=AccidentSummary)
async def accident_summary(
    accident_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccidentSummary:
    return AccidentSummary.model_validate(await AccidentService(db).summary(accident_id))


@router.patch("/{accident_id}", response_model=AccidentOut)
async def update_accident(
    accident_id: str,
    data: AccidentUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccidentOut:
    accident = await AccidentService(db).update(accident_id, data)
    return AccidentOut.model_validate(accident)


@router.patch("/{accident_id}/status", response_model=AccidentOut)
async def update_accident_status(
    accident_id: str,
    data: AccidentStatusUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccidentOut:
    """Move an accident along its lifecycle; disallowed moves return 409."""
    accident = await AccidentService(db).update_status(accident_id, data.status)
    return AccidentOut.model_validate(accident)


@router.patch("/{accident_id}/assign", response_model=AccidentOut)
async def assign_officer(
    accident_id: str,
    data: OfficerAssignment,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccidentOut:
    accident = await AccidentService(db).assign_officer(accident_id, data.officer_id)
    return AccidentOut.model_validate(accident)


@router.delete("/{accident_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_accident(
    accident_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Response:
    """Delete an accident with its dispatch records and notifications."""
    await AccidentService(db).delete(accident_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
