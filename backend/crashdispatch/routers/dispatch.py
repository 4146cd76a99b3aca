"""API routes for emergency dispatch."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from crashdispatch.database import get_db
from crashdispatch.schemas.dispatch import (
    Coordinates,
    DispatchResultOut,
    DispatchStatistics,
    EmergencyServiceOut,
    ManualDispatchRequest,
)
from crashdispatch.services.accidents import AccidentService
from crashdispatch.services.dispatch import DispatchOrchestrator
from crashdispatch.services.emergency_services import EmergencyServiceService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/dispatch", tags=["dispatch"])


@router.post("", response_model=DispatchResultOut, status_code=status.HTTP_201_CREATED)
async def manual_dispatch(
    data: ManualDispatchRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DispatchResultOut:
    """
    Dispatch emergency services for an existing accident.

    Service types that already have an active record for the accident are
    returned under ``already_active`` instead of being dispatched again.
    """
    accident = await AccidentService(db).get(data.accident_id)
    logger.info(
        f"Manual dispatch for accident {accident.report_number} requested by {data.user_id}"
    )
    result = await DispatchOrchestrator(db).dispatch(
        accident.id,
        data.user_id,
        data.severity,
        Coordinates(latitude=data.latitude, longitude=data.longitude),
    )
    return DispatchResultOut.model_validate(result)


@router.get("/active", response_model=list[EmergencyServiceOut])
async def active_dispatches(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[EmergencyServiceOut]:
    services = await EmergencyServiceService(db).active_dispatches()
    return [EmergencyServiceOut.model_validate(s) for s in services]


@router.get("/pending", response_model=list[EmergencyServiceOut])
async def pending_dispatches(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[EmergencyServiceOut]:
    services = await EmergencyServiceService(db).pending_dispatches()
    return [EmergencyServiceOut.model_validate(s) for s in services]


@router.get("/completed", response_model=list[EmergencyServiceOut])
async def completed_dispatches(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[EmergencyServiceOut]:
    services = await EmergencyServiceService(db).completed_dispatches()
    return [EmergencyServiceOut.model_validate(s) for s in services]


@router.get("/statistics", response_model=DispatchStatistics)
async def dispatch_statistics(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DispatchStatistics:
    """Dispatch counts and mean dispatched-to-arrival time."""
    return DispatchStatistics.model_validate(await EmergencyServiceService(db).statistics())


@router.get("/accident/{accident_id}", response_model=list[EmergencyServiceOut])
async def dispatches_by_accident(
    accident_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[EmergencyServiceOut]:
    services = await EmergencyServiceService(db).by_accident(accident_id)
    return [EmergencyServiceOut.model_validate(s) for s in services]
